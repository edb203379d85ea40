[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "emidi"
version = "0.1.6"
description = "Song models, MIDI/MusicXML extraction, mpv media playback and an in-process event bus for a MIDI player."
requires-python = ">=3.10"
dependencies = [
    "mido",
]
keywords = ["midi", "musicxml", "music", "audio", "player", "ipc"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: MIDI",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["emidi"]

[tool.pytest.ini_options]
addopts = "-ra"
