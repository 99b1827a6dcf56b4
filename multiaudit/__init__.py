"""multiaudit - multi-agent source auditing.

Runs many independent detectors over a Python source tree and reconciles
their findings into one conflict-resolved, prioritized report, with optional
automatic remediation and a debounced watch mode.
"""

__version__ = "0.1.0"
