[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "acremote"
version = "0.1.0"
description = "Infrared air-conditioner control, climate sensing, acknowledgement detection and pairing helpers for a home-automation controller"
requires-python = ">=3.10"
keywords = [
    "air-conditioner",
    "infrared",
    "hitachi",
    "scd40",
    "co2",
    "cfar",
    "qr-code",
    "spake2p",
    "home-automation",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Home Automation",
]
dependencies = [
    "numpy",
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
acremote = "acremote.shell:main"

[tool.hatch.build.targets.wheel]
packages = ["acremote"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
