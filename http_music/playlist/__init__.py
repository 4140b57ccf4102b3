"""
Playlist package for http-music.

Contains the grouplike tree model, the JSON document format, and playlist
option processing.
"""
