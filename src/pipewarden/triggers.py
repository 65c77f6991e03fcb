"""Trigger policy: decide whether a pipeline runs for a given event.

Branch and tag filters use gitignore-style wildcards so that patterns such
as ``feature/**`` and ``v*.*.*`` behave the way CI platforms match them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

import pathspec

from pipewarden.config.models import TriggerPolicyConfig
from pipewarden.core.logging import get_logger
from pipewarden.core.models import TriggerContext, TriggerEvent

LOGGER = get_logger(__name__)


def ref_matches(ref_name: str, patterns: List[str]) -> bool:
    """Check a branch or tag name against wildcard patterns.

    Args:
        ref_name: Branch or tag name (e.g. ``feature/login``).
        patterns: Patterns such as ``main`` or ``release/**``.

    Returns:
        True if any pattern matches.
    """
    if not ref_name or not patterns:
        return False
    # Anchor patterns at the root so "main" does not match "feature/main"
    anchored = [p if p.startswith("/") else f"/{p}" for p in patterns]
    spec = pathspec.PathSpec.from_lines("gitignore", anchored)
    return spec.match_file(ref_name)


@dataclass
class TriggerPolicy:
    """Event filter for one pipeline."""

    config: TriggerPolicyConfig

    def should_run(self, trigger: TriggerContext) -> bool:
        """Return True if the pipeline is configured to run for ``trigger``."""
        event = trigger.event
        if event == TriggerEvent.WORKFLOW_DISPATCH:
            allowed = self.config.workflow_dispatch
        elif event == TriggerEvent.SCHEDULE:
            allowed = self.config.schedule
        elif event == TriggerEvent.PULL_REQUEST:
            # Pull request filters apply to the target branch
            allowed = ref_matches(trigger.base_ref or trigger.ref_name, self.config.pull_request)
        elif trigger.is_tag:
            allowed = ref_matches(trigger.ref_name, self.config.tags)
        else:
            allowed = ref_matches(trigger.ref_name, self.config.push)

        if not allowed:
            LOGGER.info(
                f"Event '{event.value}' on '{trigger.ref_name or '<none>'}' "
                f"is not covered by the trigger policy"
            )
        return allowed
