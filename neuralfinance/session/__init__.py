"""Training-session control loop.

This package provides:
- The session state machine (neuralfinance.session.controller)
- Tick scheduling (neuralfinance.session.scheduler)
- Status-to-display mapping (neuralfinance.session.projection)
- Typed session events (neuralfinance.session.events)
"""

from __future__ import annotations

__all__ = ["controller", "events", "projection", "scheduler"]
