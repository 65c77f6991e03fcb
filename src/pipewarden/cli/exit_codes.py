"""Exit codes for the pipewarden CLI.

- 0: Success (security gate passed, release published, or no release needed)
- 1: Security findings reported, or a release build track failed
- 2: Tool execution error (scanner crash, missing binary, analysis failure)
- 3: Invalid usage (bad arguments, invalid config or release inputs)
- 4: Release publication failure
"""

from __future__ import annotations

EXIT_SUCCESS = 0
EXIT_ISSUES_FOUND = 1
EXIT_TOOL_ERROR = 2
EXIT_INVALID_USAGE = 3
EXIT_PUBLISH_FAILURE = 4
