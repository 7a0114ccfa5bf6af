"""Screening run orchestration for the AutoHire recruitment platform."""

__version__ = "0.3.0"
