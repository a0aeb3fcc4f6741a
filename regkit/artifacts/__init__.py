"""Artifact pipeline — publishable, fingerprinted registry output.

Wraps the external registry build, checks that published output still
matches the source registry, retargets embedded origins, and fingerprints
the inputs so consumers can detect stale artifacts cheaply.
"""
