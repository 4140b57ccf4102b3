"""
Broadcast core for http-music.

Signals, downloaders, and the acquisition and playback controllers.
"""
