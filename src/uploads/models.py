from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

from src.shared.constants import UNCOMPRESSED_VIDEO_FORMATS

# Etapas locales de la subida: (porcentaje, mensaje)
UPLOAD_STAGES = {
    "preparing": (0, "Preparing upload..."),
    "validating": (10, "Validating content..."),
    "subject": (20, "Creating subject..."),
    "chapter": (30, "Creating chapter..."),
    "compression": (40, "Compressing video for optimal upload..."),
    "uploading": (40, "Starting upload..."),
    "content": (90, "Creating content record..."),
    "complete": (100, "Upload complete!"),
}


class UploadRequest(BaseModel):
    """Formulario de subida ya validado"""
    model_config = ConfigDict(populate_by_name=True)

    title: str
    description: str = ""
    contentType: str = Field(..., alias="type")
    classLevel: int
    subjectId: Optional[int] = None
    subjectName: Optional[str] = None
    chapterId: Optional[int] = None
    fileName: str
    fileSize: int = 0

    @property
    def extension(self) -> str:
        return self.fileName.rsplit(".", 1)[-1].lower() if "." in self.fileName else ""


class UploadedFile(BaseModel):
    """Bloque `data.file` de la respuesta de /api/upload/:type"""
    path: Optional[str] = None
    embedUrl: Optional[str] = None
    size: Optional[int] = None
    duration: Optional[float] = None
    youtubeVideoId: Optional[str] = None
    watchUrl: Optional[str] = None
    thumbnailUrl: Optional[str] = None
    processingStatus: Optional[str] = None


def needs_compression(content_type: str, extension: str, size_bytes: int, threshold_mb: int = 100) -> bool:
    """Los videos de más de `threshold_mb` MB o que no son mp4/webm se comprimen en el servidor"""
    if content_type != "video":
        return False
    size_mb = size_bytes / (1024 * 1024)
    return size_mb > threshold_mb or extension not in UNCOMPRESSED_VIDEO_FORMATS


def build_content_record(upload: UploadRequest, uploaded: UploadedFile, chapter_id) -> dict:
    """Cuerpo de POST /api/teachers/content"""
    is_video = upload.contentType == "video"
    record = {
        "title": upload.title,
        "description": upload.description or "",
        "contentType": upload.contentType,
        "fileUrl": uploaded.path or uploaded.embedUrl,
        "fileSize": uploaded.size,
        "chapterId": int(chapter_id),
        "duration": uploaded.duration if is_video else None,
        "isFree": True,
    }
    if is_video and uploaded.youtubeVideoId:
        record.update({
            "youtubeVideoId": uploaded.youtubeVideoId,
            "embedUrl": uploaded.embedUrl,
            "watchUrl": uploaded.watchUrl,
            "thumbnailUrl": uploaded.thumbnailUrl,
        })
    return record
