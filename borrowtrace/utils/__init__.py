"""Utility helpers shared across the tracker."""
