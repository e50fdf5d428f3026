[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tektonrelay"
version = "0.1.0"
description = "Decode Tekton CloudEvents, guard them with CEL-style expressions and send them to Datadog"
requires-python = ">=3.11"
keywords = [
    "tekton",
    "cloudevents",
    "ci",
    "notifications",
    "cel",
    "datadog",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
]
dependencies = [
    "requests>=2.28",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[tool.hatch.build.targets.wheel]
packages = ["tektonrelay"]

[tool.hatch.build.targets.sdist]
include = [
    "tektonrelay",
    "tests",
    "README.md",
]

[tool.pytest.ini_options]
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
