"""pipewarden - release coordination and security scan orchestration.

Runs the security scan pipeline and the multi-component release pipeline
as plain Python, delegating to external tools (scanners, compilers,
GitHub, Slack) through subprocesses and HTTP.
"""

__version__ = "0.3.0"
