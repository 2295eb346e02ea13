# conchishell

A small interactive command shell. It reads a line, splits it into words,
honours single and double quotes, expands `$VARIABLES` and `$?`, and runs
the result: external programs found on `PATH`, or one of its builtins.

## Features

- Pipes: `ls | grep py | wc -l`
- Output redirection: `echo hi > out.txt`, appending with `>>`
- Input redirection: `wc -l < file.txt`
- Here-documents: `cat << END`; the lines typed are stored in files named
  `tmp1`, `tmp2`, ... in the system temporary directory
- Quoting: `'literal $HOME'` versus `"expanded $HOME"`
- Builtins: `echo` (with `-n`), `cd`, `pwd`, `env`, `export`, `unset`, `exit`
- `$?` holds the exit status of the last command

Syntax errors, such as a dangling `|`, `||`, an unclosed quote or a
redirection at the end of a line, are reported and the line is skipped.

Builtins that are part of a pipeline run on a copy of the environment, so
`cd` or `export` inside a pipeline does not change the shell itself.

## Installing

```
pip install .
```

## Running

```
conchishell
```

The shell takes no arguments; it shows a prompt and reads commands until
`exit` or end of input (Ctrl-D). Ctrl-C abandons the current line and
Ctrl-\ is ignored at the prompt.

## Using it from Python

```python
from conchishell.env import Environment
from conchishell.shell import Shell

env = Environment.from_strings(["HOME=/tmp", "PATH=/usr/bin:/bin"])
shell = Shell(env)
status = shell.run_line("echo $HOME")
```

`Shell.run_line` returns the exit status of the line and raises
`conchishell.builtins.ShellExit` when the `exit` builtin is run;
`Shell.loop` runs the prompt loop and returns the final status.

The pieces can also be used on their own:

- `conchishell.parse.search_in_line` turns a line into expanded words.
- `conchishell.tokens.build_tokens` turns those words into `Token` objects,
  and `check_redirections` rejects misplaced operators.
- `conchishell.executor.Executor` runs a token list; `wait_all` returns
  the status of the last command.
- `conchishell.builtins.run_builtin` runs a builtin against an
  `Environment` with the streams you pass it.

## What it does not do

This is a minimal shell. It has no `&&`, `||`, `;`, subshells,
background jobs or job control, no wildcard or tilde expansion, no
scripting (control structures, functions, reading commands from a file),
and no start-up or configuration files.

## Tests

```
pip install .[test]
pytest
```