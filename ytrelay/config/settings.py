from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

class DownloadConfig(BaseModel):
    default_video_quality: int = Field(default=720, ge=1, description="Target height when none is requested")
    default_audio_bitrate: int = Field(default=192, ge=8, description="MP3 bitrate (kbps) when none is requested")
    chunk_size: int = Field(default=256 * 1024, ge=1024, description="Read size for piped media")
    range_chunk_size: int = Field(default=10 * 1024 * 1024, ge=1024, description="Range window for direct stream fetches")
    info_timeout: float = Field(default=30.0, gt=0, description="Timeout for metadata extraction in seconds")

class YtDlpConfig(BaseModel):
    binary: str = Field(default="yt-dlp", description="yt-dlp executable")
    socket_timeout: int = Field(default=10, ge=1, description="Socket timeout for yt-dlp")
    retries: int = Field(default=3, ge=0, description="Retries performed by yt-dlp itself")
    default_format: str = Field(default="best", description="Format used when no explicit selection is possible")

class FfmpegConfig(BaseModel):
    enabled: bool = Field(default=True, description="Use ffmpeg when it is installed")
    binary: str = Field(default="ffmpeg", description="ffmpeg executable")

class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="%(message)s", description="Log format")
    enable_rich: bool = Field(default=True, description="Enable rich console logging")

    @field_validator('level')
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

class I18nConfig(BaseModel):
    default_locale: str = Field(default="en", description="Default locale")
    supported_locales: list = Field(default=["en"], description="Supported locales")

class ApiConfig(BaseModel):
    title: str = Field(default="YT Downloader API", description="API title")
    version: str = Field(default="1.0.0", description="API version")
    cors_origins: list = Field(default=["*"], description="CORS allowed origins")
    debug: bool = Field(default=False, description="Enable debug mode")
    public_base_url: Optional[str] = Field(default=None, description="Base URL used in /api/get-url links")

class Config(BaseSettings):
    model_config = SettingsConfigDict(env_nested_delimiter="__", extra="ignore")

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3000, ge=1, le=65535, description="Listen port")
    download: DownloadConfig = Field(default_factory=DownloadConfig)
    ytdlp: YtDlpConfig = Field(default_factory=YtDlpConfig)
    ffmpeg: FfmpegConfig = Field(default_factory=FfmpegConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    i18n: I18nConfig = Field(default_factory=I18nConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

config = Config()
