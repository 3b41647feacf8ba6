[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "svcframe"
version = "0.1.0"
description = "Health checks, route assembly, page templates and connection helpers for web API and web-site services"
requires-python = ">=3.10"
dependencies = [
    "jinja2",
]
keywords = ["web", "api", "health-check", "middleware", "routes", "templates", "wsgi"]
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
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["svcframe"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
