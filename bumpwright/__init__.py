"""bumpwright: versioning and changelog engine.

Computes the next release version of every package in a repository from
conventional commits and change files, renders changelog sections, and
collects the file writes, deletions and tags a release needs.
"""
