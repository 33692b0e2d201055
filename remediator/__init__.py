"""Remediator: an issue-driven remediation agent that proposes fixes as pull requests"""

__version__ = "0.3.0"
