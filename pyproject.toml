[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "slamap"
version = "0.1.0"
description = "UTM/Web Mercator conversion, KML/KMZ import and export for CAD drawings, and satellite map tile handling"
requires-python = ">=3.10"
dependencies = [
    "pillow",
]
keywords = [
    "gis",
    "kml",
    "kmz",
    "utm",
    "web-mercator",
    "map-tiles",
    "cad",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: End Users/Desktop",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: GIS",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
slamap = "slamap.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["slamap"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
