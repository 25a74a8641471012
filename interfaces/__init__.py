"""
Abstract contracts for the job store, geo data store, work queue,
artifact storage and raster source.
"""
