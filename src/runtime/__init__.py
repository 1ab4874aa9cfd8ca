"""
Runtime wiring for the pipeline collaborators.
"""
