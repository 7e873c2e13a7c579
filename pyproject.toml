[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rucontrol"
version = "0.1.0"
description = "Student meal-credit server, client and JSON protocol for a university restaurant"
requires-python = ">=3.10"
dependencies = []
keywords = ["restaurant", "credits", "point-of-sale", "tcp", "json", "sqlite"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Point-Of-Sale",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
rucontrol-server = "rucontrol.server:main"
rucontrol = "rucontrol.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["rucontrol"]

[tool.pytest.ini_options]
addopts = "-ra"
