"""
Music logic for http-music: the seeded sequencer, the picker, and the
history controller that caches picks in a navigable timeline.
"""
