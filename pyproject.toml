[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dnstoys"
version = "1.0.0"
description = "A DNS server that answers queries with small useful tools: time, weather, unit and currency conversion, and more."
requires-python = ">=3.11"
dependencies = [
    "dnspython",
]
keywords = ["dns", "server", "txt", "tools", "dig"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: No Input/Output (Daemon)",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Name Service (DNS)",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
dnstoys = "dnstoys.server:main"

[tool.hatch.build.targets.wheel]
packages = ["dnstoys"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
