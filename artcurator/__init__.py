"""Ensemble image analysis and personalized artwork recommendation engine."""
