[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "treealoc"
version = "0.1.0"
description = "A simulated best-fit memory allocator that tracks blocks in a B-tree, with a pygame tree viewer"
requires-python = ">=3.10"
dependencies = [
    "pygame",
]
keywords = ["allocator", "b-tree", "memory", "visualization", "best-fit"]
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
    "Topic :: Software Development :: Libraries",
    "Topic :: Education",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
treealoc = "treealoc.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["treealoc"]

[tool.pytest.ini_options]
addopts = "-ra"
