"""FFmpeg integration: encoding profiles, argument construction, log parsing
and process execution.
"""
