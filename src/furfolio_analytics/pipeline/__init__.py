from furfolio_analytics.pipeline.orchestrator import AnalyticsPipeline

__all__ = ['AnalyticsPipeline']
