[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sscompiler"
version = "0.1.0"
description = "Generate textual LLVM IR from syntax trees of the SSC pseudocode language"
requires-python = ">=3.10"
dependencies = []
keywords = ["compiler", "llvm", "ir", "codegen", "pseudocode"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Compilers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["sscompiler"]

[tool.pytest.ini_options]
addopts = "-ra"
