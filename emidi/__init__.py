"""Song models, MIDI and MusicXML extraction, mpv media playback and in-process event messaging for a MIDI player."""

__version__ = "0.1.6"