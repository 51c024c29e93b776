"""Pipeline activities.

Each activity is one step of a run:
- build_request: per-year WMS GetMap request construction (pure)
- fetch_frame: download and content-type validation of one frame
- assemble_frames: year-ordered frames → looping GIF
- transcode_video: GIF → MP4 via ffmpeg
"""
