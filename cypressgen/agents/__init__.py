from .base import GeneratedArtifact
from .selectors import SelectorsAgent
from .steps import StepsAgent
from .verification import VerificationAgent, VerifyResult

__all__ = ["GeneratedArtifact", "SelectorsAgent", "StepsAgent", "VerificationAgent", "VerifyResult"]
