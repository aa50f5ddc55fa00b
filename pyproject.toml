[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bctview"
version = "0.1.0"
description = "Viewer and decoder for BCT and DDS textures (DXT1/3/5, ATI1/2, 32-bit BGRA)"
requires-python = ">=3.10"
dependencies = []
keywords = ["dds", "bct", "texture", "dxt", "bc1", "bc3", "bc5", "viewer", "xbox360"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: X11 Applications",
    "Intended Audience :: End Users/Desktop",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: Viewers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
bctview = "bctview.app:main"

[tool.hatch.build.targets.wheel]
packages = ["bctview"]

[tool.pytest.ini_options]
addopts = "-ra"
