# tempchat/api/files.py

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import FileResponse

from tempchat.api.deps import get_file_storage
from tempchat.core.security import current_session
from tempchat.core.types import SessionData
from tempchat.services.storage import FileStorage, guess_type

router = APIRouter(prefix="/api")


@router.post("/upload")
async def upload_file(
    file: UploadFile = File(...),
    session: SessionData = Depends(current_session),
    storage: FileStorage = Depends(get_file_storage),
):
    # one byte past the limit is enough to refuse it
    data = await file.read(storage.max_bytes + 1)
    attachment = storage.save(data, file.filename or "", file.content_type)
    return {"success": True, "file": attachment.to_wire()}


@router.get("/files/{filename}")
def get_file(
    filename: str,
    session: SessionData = Depends(current_session),
    storage: FileStorage = Depends(get_file_storage),
):
    path = storage.path_for(filename)
    return FileResponse(
        path,
        media_type=guess_type(filename),
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )
