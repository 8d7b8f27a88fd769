[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pdfmill"
version = "0.1.0"
description = "Read, edit and write PDF documents: objects, streams, cross-reference tables and content streams."
requires-python = ">=3.10"
dependencies = []
keywords = ["pdf", "editing", "manipulation", "parser", "xref"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Text Processing",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pdfmill"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
