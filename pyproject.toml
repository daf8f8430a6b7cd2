[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ordermatch"
version = "0.1.0"
description = "A price-time priority order matching engine with an HTTP API and a WebSocket server"
requires-python = ">=3.10"
keywords = ["matching engine", "order book", "trading", "limit order", "exchange"]
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
    "Topic :: Office/Business :: Financial :: Investment",
]
dependencies = [
    "sortedcontainers",
    "websockets",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
    "websockets",
]

[project.scripts]
ordermatch = "ordermatch.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["ordermatch"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
