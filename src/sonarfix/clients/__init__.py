"""Clients for external services consumed by Sonar Autofix."""

from .sonarqube import PAGE_SIZE, IssueBatch, SonarQubeClient

__all__ = ["PAGE_SIZE", "IssueBatch", "SonarQubeClient"]
