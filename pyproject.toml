[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sfinterp"
version = "0.1.0"
description = "Interpreter and cost model for a small register-based assembly language"
requires-python = ">=3.10"
dependencies = []
keywords = ["interpreter", "assembly", "cost-model", "compiler", "education"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Interpreters",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
sf-interpreter = "sfinterp.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["sfinterp"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
