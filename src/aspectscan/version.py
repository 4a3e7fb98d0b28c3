"""Version information and release notes for AspectScan."""

__version__ = "0.1.0"

RELEASE_NOTES = """
## 0.1.0

Initial release.

- Aspect ratio detection from FFmpeg cropdetect samples
- Primary and secondary ratio classification for multi-format videos
- Nearest and prefer-higher rounding onto a configurable canonical ratio list
- Fast, default and accurate sampling modes
- YAML configuration with CLI overrides
- Rich console progress display and JSON result export
""".strip()
