"""
HTTP API for the segmentation pipeline.
"""
