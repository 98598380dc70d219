[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ocuroot"
version = "0.1.0"
description = "Release and deployment refs, a file-based ref store, package data models and handoff graphs for release pipelines"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "release",
    "deployment",
    "ci",
    "cd",
    "refs",
    "state-store",
    "pipeline",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["ocuroot"]

[tool.hatch.build.targets.sdist]
include = ["ocuroot", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
