[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "camodels"
version = "0.1.0"
description = "Pinhole, Kannala-Brandt (equidistant) and Scaramuzza omnidirectional camera models with projection, lifting, undistortion maps and initial intrinsic estimates"
requires-python = ">=3.10"
keywords = [
    "camera model",
    "pinhole",
    "fisheye",
    "kannala-brandt",
    "omnidirectional",
    "scaramuzza",
    "calibration",
    "undistortion",
    "utm",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Processing",
]
dependencies = [
    "numpy",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["camodels"]

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
ignore_missing_imports = true
