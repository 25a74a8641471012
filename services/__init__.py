"""
Service layer - processors and the helpers they share.

Modules:
    geometry.py:        GeoJSON parsing, unit conversion, metric buffer/area/perimeter
    raster_ops.py:      validity masks, geometry rasterisation, GeoTIFF/PNG encoding
    processors/:        Processor base class and one processor per job type
    registry.py:        ProcessorRegistry and build_registry() (explicit, no decorators)
    job_submission.py:  producer-side submit_job()

Submodules are imported directly (e.g. `from services.registry import
build_registry`); this package does not re-export them so importing the
worker does not drag in the producer helper and vice versa.
"""
