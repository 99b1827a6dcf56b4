"""Report sink: render and persist Reports."""

from multiaudit.report.renderer import ReportRenderer, ReportView, load_report, save_report, truncation_notice

__all__ = ["ReportRenderer", "ReportView", "load_report", "save_report", "truncation_notice"]
