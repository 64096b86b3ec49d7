[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kindcluster"
version = "0.6.0a0"
description = "Configuration, validation, node helpers, command running and CNI config writing for local Kubernetes clusters made of container nodes"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["kubernetes", "kind", "docker", "cluster", "containers", "cni"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Clustering",
    "Topic :: Software Development :: Testing",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
kindcluster = "kindcluster.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["kindcluster"]

[tool.pytest.ini_options]
addopts = "-ra"
