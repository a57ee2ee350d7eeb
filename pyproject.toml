[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "etherage"
version = "0.5.1"
description = "EtherCAT master building blocks: PDU data packing, EEPROM layout, mailbox framing and CoE SDO transfers"
requires-python = ">=3.10"
dependencies = []
keywords = ["ethercat", "ethernet", "realtime", "motion-control", "fieldbus", "canopen"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Manufacturing",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Operating System :: OS Independent",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["etherage"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
