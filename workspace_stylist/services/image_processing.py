"""사진 검증 및 Vision 모델 전송 형식 변환"""
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from ..exceptions import ValidationError
from ..models.schemas import PhotoPayload
from ..utils.logger import logger

MIME_TYPES = {
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}

JPEG_QUALITY = 90


def detect_image_format(content: bytes) -> Optional[str]:
    """매직 바이트로 형식 판별 (jpeg / png / webp)"""
    if content.startswith(b"\xff\xd8\xff"):
        return "jpeg"
    if content.startswith(b"\x89PNG\r\n\x1a\n"):
        return "png"
    if len(content) >= 12 and content[:4] == b"RIFF" and content[8:12] == b"WEBP":
        return "webp"
    return None


def validate_photo(photo: PhotoPayload, max_size_bytes: int) -> None:
    """빈 내용 / 크기 초과 검사 (재시도 불가)"""
    if not photo.content or photo.size_bytes <= 0:
        raise ValidationError("사진 데이터가 비어 있습니다.")

    size = max(photo.size_bytes, len(photo.content))
    if size > max_size_bytes:
        max_mb = max_size_bytes // (1024 * 1024)
        raise ValidationError(
            f"사진 크기가 너무 큽니다. 최대 {max_mb}MB까지 허용됩니다.",
            status_code=413,
        )


def encode_for_vision(content: bytes) -> Tuple[bytes, str]:
    """(전송할 바이트, MIME 타입)

    지원 형식은 그대로 보내고, 나머지는 Pillow 로 JPEG 재인코딩한다.
    """
    image_format = detect_image_format(content)
    if image_format is not None:
        return content, MIME_TYPES[image_format]

    try:
        with Image.open(BytesIO(content)) as image:
            source_format = image.format
            rgb = image.convert("RGB")
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Undecodable photo payload: {e}")
        raise ValidationError("이미지 파일을 읽을 수 없습니다.")

    buffer = BytesIO()
    rgb.save(buffer, format="JPEG", quality=JPEG_QUALITY)
    logger.info(f"Re-encoded {source_format} photo to JPEG ({len(buffer.getvalue())} bytes)")
    return buffer.getvalue(), MIME_TYPES["jpeg"]
