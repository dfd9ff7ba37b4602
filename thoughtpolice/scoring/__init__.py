"""Scoring service adapters."""

from .remote import RemoteScoringPipeline

__all__ = ['RemoteScoringPipeline']
