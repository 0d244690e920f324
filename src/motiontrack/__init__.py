from .pipeline import AnalysisConfig, MotionAnalysis, run_motion_analysis

__all__ = [
    "AnalysisConfig",
    "MotionAnalysis",
    "run_motion_analysis",
]
