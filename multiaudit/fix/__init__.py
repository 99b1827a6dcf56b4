"""Auto-fix: safe, idempotent source rewrites."""

from multiaudit.fix.fixer import BEST_EFFORT_CATEGORIES, AutoFixer, FixCategory

__all__ = ["BEST_EFFORT_CATEGORIES", "AutoFixer", "FixCategory"]
