import logging

from fastapi import APIRouter, HTTPException, Depends, UploadFile, File, Form
from typing import List

from core.config import MAX_MATERIAL_FILE_SIZE
from models.auth import User
from models.subject import StudyMaterialInfo, StudyMaterial
from auth.dependencies import get_current_user
from routers.deps import get_storage
from services.material_parser import extract_material_text
from services.storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/materials", tags=["Study Materials"])


def _info(material: StudyMaterial) -> StudyMaterialInfo:
    return StudyMaterialInfo(
        id=material.id,
        subject_id=material.subject_id,
        file_name=material.file_name,
        file_type=material.file_type,
        char_count=len(material.content or ""),
        created_at=material.created_at
    )


@router.post("", response_model=StudyMaterialInfo, status_code=201)
async def upload_material(
    subject_id: int = Form(...),
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    """
    Upload a PDF or text file for a subject. The extracted text is used as
    context for subject practice interviews.
    """
    if storage.get_subject(subject_id) is None:
        raise HTTPException(status_code=404, detail="Subject not found")

    file_bytes = await file.read()

    if len(file_bytes) > MAX_MATERIAL_FILE_SIZE:
        raise HTTPException(status_code=400, detail="File size exceeds 5MB limit")

    if len(file_bytes) == 0:
        raise HTTPException(status_code=400, detail="File is empty")

    content = extract_material_text(file.filename, file.content_type, file_bytes)

    material = storage.create_study_material(
        current_user.id,
        subject_id,
        file.filename or "upload",
        file.content_type or "application/octet-stream",
        content
    )
    logger.info(f"User {current_user.id} uploaded {material.file_name} ({len(content)} chars) for subject {subject_id}")
    return _info(material)


@router.get("", response_model=List[StudyMaterialInfo])
async def list_materials(
    subject_id: int = None,
    current_user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    if subject_id is not None:
        materials = storage.list_study_materials_by_subject(current_user.id, subject_id)
    else:
        materials = storage.list_study_materials_by_user(current_user.id)
    return [_info(m) for m in materials]


@router.delete("/{material_id}", response_model=dict)
async def delete_material(
    material_id: int,
    current_user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    material = storage.get_study_material(material_id)
    if material is None or material.user_id != current_user.id:
        raise HTTPException(status_code=404, detail="Material not found")

    storage.delete_study_material(material_id)
    return {"message": "Material deleted"}
