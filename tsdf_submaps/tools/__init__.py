"""
Command line tools for tsdf_submaps.
"""
