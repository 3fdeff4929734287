"""Helper utilities for PlantCare."""
