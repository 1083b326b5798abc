import io

from PIL import Image

from travel_diary.services.storage import MEDIA_KINDS, MediaStore
from travel_diary.services.submissions import UploadedMedia


def make_image_bytes(width: int, height: int, fmt: str = "JPEG", mode: str = "RGB") -> bytes:
    buf = io.BytesIO()
    Image.new(mode, (width, height), "orange").save(buf, format=fmt)
    return buf.getvalue()


def jpeg_upload(width: int = 1600, height: int = 1200, name: str = "photo.jpg") -> UploadedMedia:
    return UploadedMedia(
        filename=name,
        content_type="image/jpeg",
        file=io.BytesIO(make_image_bytes(width, height)),
    )


def stored_refs(store: MediaStore) -> set:
    """Every file currently held by the media store."""
    return {ref for kind in MEDIA_KINDS for ref, _ in store.iter_refs(kind)}
