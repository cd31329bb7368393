"""
Listing intake: reads a multipart or JSON body into plain fields plus image
uploads, then validates the fields against a schema.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar
from fastapi import Request
from starlette.datastructures import UploadFile
from pydantic import BaseModel, ValidationError as PydanticValidationError
from aashiyana.services.error_handler import ErrorHandlerService
from aashiyana.services.image import ImageUpload
from aashiyana.utils.exceptions import (
    BadRequestError,
    FileUploadError,
    RequestTooLargeError,
    TooManyFilesError,
    UnsupportedFileTypeError,
    ValidationError,
)
import json
import logging

logger = logging.getLogger(__name__)

IMAGE_FIELD = "images"
# Form fields that may repeat
LIST_FIELDS = {"amenities", "images"}

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class PropertyFormData:
    """Parsed listing body: text fields and image uploads."""

    def __init__(self, fields: Dict[str, Any], files: List[ImageUpload]):
        self.fields = fields
        self.files = files


def _parse_location(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        raise ValidationError(field_errors=[
            {"field": "location", "message": "Location must be a valid JSON object"}
        ])


def _check_size(received: int, max_body_size: Optional[int]) -> None:
    if max_body_size is not None and received > max_body_size:
        raise RequestTooLargeError(received, max_body_size)


async def _read_multipart(request: Request, max_files: int, max_body_size: Optional[int]) -> PropertyFormData:
    # Starlette turns parser failures into a 400 carrying the parser message
    form = await request.form()

    fields: Dict[str, Any] = {}
    file_parts: List[UploadFile] = []
    received = 0
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            if key != IMAGE_FIELD:
                raise FileUploadError(f"Unexpected file field '{key}'")
            file_parts.append(value)
            continue
        received += len(value.encode("utf-8"))
        if key in LIST_FIELDS:
            fields.setdefault(key, []).append(value)
        else:
            fields[key] = value
    _check_size(received, max_body_size)

    if len(file_parts) > max_files:
        raise TooManyFilesError(len(file_parts), max_files)

    files = []
    for part in file_parts:
        content_type = (part.content_type or "").lower()
        if not content_type.startswith("image/"):
            raise UnsupportedFileTypeError(content_type)
        data = await part.read()
        await part.close()
        # Chunked uploads carry no Content-Length, so count what arrived
        received += len(data)
        _check_size(received, max_body_size)
        files.append(ImageUpload(part.filename, content_type, data))

    # A single amenities value is a comma separated list
    amenities = fields.get("amenities")
    if isinstance(amenities, list) and len(amenities) == 1:
        fields["amenities"] = amenities[0]

    return PropertyFormData(fields, files)


async def _read_json(request: Request, max_body_size: Optional[int]) -> PropertyFormData:
    body = await request.body()
    _check_size(len(body), max_body_size)
    if not body.strip():
        return PropertyFormData({}, [])
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        raise BadRequestError("Request body is not valid JSON")
    if not isinstance(payload, dict):
        raise BadRequestError("Request body must be a JSON object")
    return PropertyFormData(payload, [])


async def parse_property_form(
    request: Request,
    max_files: int = 10,
    max_body_size: Optional[int] = None,
) -> PropertyFormData:
    """
    Read a listing body sent as multipart/form-data or JSON.

    Image parts must arrive under ``images``. ``location`` may be a JSON
    string (as multipart forms send it) or an object.

    Raises:
        UnsupportedFileTypeError: If an uploaded part is not an image
        TooManyFilesError: If more than ``max_files`` images were sent
        RequestTooLargeError: If the body read is over ``max_body_size`` bytes
        ValidationError: If ``location`` is not valid JSON
        BadRequestError: If the body cannot be read
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data") or content_type.startswith(
        "application/x-www-form-urlencoded"
    ):
        form_data = await _read_multipart(request, max_files, max_body_size)
    else:
        form_data = await _read_json(request, max_body_size)

    if "location" in form_data.fields:
        form_data.fields["location"] = _parse_location(form_data.fields["location"])

    logger.debug(
        f"Listing intake: {sorted(form_data.fields)} with {len(form_data.files)} files"
    )
    return form_data


def validate_fields(schema: Type[SchemaT], fields: Dict[str, Any]) -> SchemaT:
    """
    Validate intake fields against a schema.

    Raises:
        ValidationError: Listing every offending field
    """
    try:
        return schema.model_validate(fields)
    except PydanticValidationError as e:
        raise ValidationError(field_errors=ErrorHandlerService.field_errors(e.errors()))
