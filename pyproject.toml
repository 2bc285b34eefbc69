[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vslcomp"
version = "0.1.0"
description = "Syntax tree simplification, symbol binding and x86-64 assembly generation for the VSL teaching language"
requires-python = ">=3.10"
dependencies = []
keywords = ["compiler", "vsl", "code-generation", "assembly", "x86-64", "symbol-table"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Compilers",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["vslcomp"]

[tool.hatch.build.targets.sdist]
include = ["vslcomp", "tests"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
