[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "barekit"
version = "0.1.0"
description = "BMFS disk image tool, kernel module packer, and Python models of small bare-metal kernel data structures"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "bmfs",
    "filesystem",
    "disk-image",
    "bootloader",
    "kernel",
    "bare-metal",
    "allocator",
    "framebuffer",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
    "Topic :: System :: Boot",
    "Topic :: Software Development :: Embedded Systems",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
barekit-bmfs = "barekit.bmfs:main"
barekit-pack = "barekit.packer:main"

[tool.hatch.build.targets.wheel]
packages = ["barekit"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
