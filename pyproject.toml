[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "contractkit"
version = "0.1.0"
description = "In-memory smart contract framework with queue, reflect, staking and IBC reflect example contracts"
requires-python = ">=3.10"
dependencies = []
keywords = ["smart-contracts", "ibc", "contracts", "key-value storage", "simulation"]
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
    "Topic :: Software Development :: Libraries :: Application Frameworks",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["contractkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
