[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "revssh"
version = "0.1.0"
description = "Manage reverse SSH tunnels from the command line or a small web API"
requires-python = ">=3.11"
keywords = ["ssh", "reverse tunnel", "port forwarding", "supervisor", "networking"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Environment :: Web Environment",
    "Framework :: FastAPI",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "platformdirs>=3",
    "tomli-w>=1.0",
    "fastapi>=0.100",
    "uvicorn>=0.23",
]

[project.optional-dependencies]
test = [
    "pytest>=7",
    "httpx>=0.24",
]

[project.scripts]
revssh = "revssh.cli:main"
revssh-web = "revssh.web:main"

[tool.hatch.build.targets.wheel]
packages = ["revssh"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
warn_redundant_casts = true
