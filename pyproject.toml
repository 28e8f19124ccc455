[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "amigadisk"
version = "0.1.0"
description = "Low-level building blocks for Amiga disk images (ADF): devices, block bitmaps, directory caches and paths"
requires-python = ">=3.10"
dependencies = []
keywords = ["amiga", "adf", "disk image", "ffs", "filesystem", "dircache"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["amigadisk"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"
