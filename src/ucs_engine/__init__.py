"""
UCS Engine - dependency-driven recalculation for the UCS sustainability index.

Provides:
- A static asset graph describing which assets derive from which
- Pure formula evaluation with operator-tunable constants
- Affected-set resolution and side-effect-free impact previews
- Business-day gating backed by a holiday calendar
- Audited, all-or-nothing recalculation per date
"""

__version__ = "0.1.0"
