[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "s3warp"
version = "0.1.0"
description = "Operation records, tab-separated CSV input and output, random object data and mixed operation distributions for S3 benchmark runs."
requires-python = ">=3.10"
dependencies = []
keywords = ["benchmark", "s3", "object storage", "throughput", "latency", "csv"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Benchmark",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["s3warp"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
