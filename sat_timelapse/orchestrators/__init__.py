"""Pipeline orchestration.

- timelapse_pipeline: the run state machine shared by the HTTP and CLI
  entry points
"""
