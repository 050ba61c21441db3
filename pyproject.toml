[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "polyarb"
version = "0.1.0"
description = "Market discovery, YES/NO arbitrage detection and position and exposure tracking for hourly crypto up-or-down prediction markets"
requires-python = ">=3.10"
keywords = [
    "prediction-markets",
    "arbitrage",
    "order-book",
    "risk-management",
    "trading",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: Office/Business :: Financial :: Investment",
]
dependencies = [
    "python-dotenv",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["polyarb"]

[tool.hatch.build.targets.sdist]
include = [
    "polyarb",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
