from furfolio_analytics.output.generator import ReportGenerator

__all__ = ['ReportGenerator']
