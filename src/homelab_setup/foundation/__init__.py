"""Foundation layer: errors, logging, configuration and shared types.

Nothing in here imports from the feature packages.
"""
