from kormo.models.profile import Profile, ProfileRole, Tier
from kormo.models.task import Task
from kormo.models.analysis import Analysis
from kormo.models.analysis_cache import AnalysisCache
from kormo.models.job_application import JobApplication

__all__ = [
    "Profile", "ProfileRole", "Tier", "Task", "Analysis", "AnalysisCache", "JobApplication",
]
