[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "conchishell"
version = "0.1.0"
description = "A small interactive shell with pipes, redirections, here-documents and builtins"
requires-python = ">=3.10"
dependencies = []
keywords = ["shell", "command-line", "pipes", "redirection", "here-document"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Shells",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
conchishell = "conchishell.shell:main"

[tool.hatch.build.targets.wheel]
packages = ["conchishell"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
