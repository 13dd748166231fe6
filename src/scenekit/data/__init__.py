"""Frame sampling and video source helpers."""

from .frame_sampler import (
    ExtractionProgress,
    FrameSampler,
    SamplingOptions,
    SamplingPlan,
    SamplingResult,
    compute_sampling_plan,
    progress_percentage,
)
from .video_loader import SourceFile, ensure_directory, iter_video_files
from .video_stream import MediaHandle, OpenCVStream, SeekableStream, encode_jpeg

__all__ = [
    "FrameSampler",
    "SamplingOptions",
    "SamplingPlan",
    "SamplingResult",
    "ExtractionProgress",
    "compute_sampling_plan",
    "progress_percentage",
    "SourceFile",
    "ensure_directory",
    "iter_video_files",
    "MediaHandle",
    "OpenCVStream",
    "SeekableStream",
    "encode_jpeg",
]
