from .internal import DownloadPlan, DownloadRequest, MediaType, PlanStrategy, StreamDescriptor, VideoDetails, VideoMetadata
from .request import DownloadQuery
from .response import AudioOption, DownloadUrlResponse, FormatOptions, VideoInfo, VideoOption

__all__ = [
    "AudioOption",
    "DownloadPlan",
    "DownloadQuery",
    "DownloadRequest",
    "DownloadUrlResponse",
    "FormatOptions",
    "MediaType",
    "PlanStrategy",
    "StreamDescriptor",
    "VideoDetails",
    "VideoInfo",
    "VideoMetadata",
    "VideoOption",
]
