"""Satellite Imagery Timelapse Pipeline.

Turns a geographic point and a list of years into a short MP4 showing
how the satellite imagery at that point changed: one WMS frame per
year, assembled into a looping GIF and transcoded with ffmpeg.
"""

__version__ = "0.1.0"
