"""gifclip - captioned GIF/video clips from a moment of a video.

Resolves a moment of interest (explicit timestamps or a quoted line of
dialogue) into an exact clip range and renders it with burned-in captions.
"""

__version__ = "0.1.0"
