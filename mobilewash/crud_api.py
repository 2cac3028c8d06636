# mobilewash/crud_api.py
"""
Router factory exposing a CrudRepository as a single JSON collection endpoint:

  GET    <prefix>                 all records
  GET    <prefix>?id=1            one record (404 if missing)
  GET    <prefix>?search=jo       name/email search
  GET    <prefix>?email=a@b.co    one record by email (404 if missing)
  POST   <prefix>                 create           -> 400 / 409
  PUT    <prefix>     {id, ...}   partial update   -> 400 / 404 / 409
  DELETE <prefix>     {id} or ?id delete           -> 400 / 404
"""

from typing import Any, Dict, List, Optional, Type

from fastapi import APIRouter, Body, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from mobilewash.crud import CrudRepository, DuplicateRecordError


def send_success(data: Any, message: str = "Success", status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": True, "message": message, "data": data})


def send_error(status_code: int, error: str, message: str,
               details: Optional[List[str]] = None) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "error": error, "message": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _validation_details(exc: ValidationError) -> List[str]:
    details = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ())) or "body"
        details.append(f"{field}: {err.get('msg')}")
    return details


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def build_crud_router(repo: CrudRepository, prefix: str,
                      create_schema: Type[BaseModel], update_schema: Type[BaseModel]) -> APIRouter:
    router = APIRouter()
    label = repo.entity.capitalize()

    @router.get(prefix)
    def list_records(id: Optional[int] = Query(None), search: Optional[str] = Query(None),
                     email: Optional[str] = Query(None)):
        if id is not None:
            record = repo.get_by_id(id)
            if not record:
                return send_error(404, "Not Found", f"{label} with ID {id} not found")
            return send_success(record)
        if search:
            return send_success(repo.search(search))
        if email:
            record = repo.get_by_email(email)
            if not record:
                return send_error(404, "Not Found", f"{label} with email {email} not found")
            return send_success(record)
        return send_success(repo.get_all())

    @router.post(prefix)
    def create_record(data: Any = Body(None)):
        if not isinstance(data, dict):
            return send_error(400, "Bad Request", "Request body must be a valid JSON object")
        try:
            payload = create_schema.model_validate(data)
        except ValidationError as e:
            return send_error(400, "Validation Error", "Field validation failed", _validation_details(e))
        try:
            record = repo.create(payload.model_dump(exclude_none=True))
        except DuplicateRecordError as e:
            return send_error(409, "Conflict", str(e))
        return send_success(record, f"{label} created successfully")

    @router.put(prefix)
    def update_record(data: Any = Body(None)):
        if not isinstance(data, dict):
            return send_error(400, "Bad Request", "Request body must be a valid JSON object")
        record_id = _as_int(data.get("id"))
        if record_id is None:
            return send_error(400, "Bad Request", "ID is required for updates")
        if not repo.get_by_id(record_id):
            return send_error(404, "Not Found", f"{label} with ID {record_id} not found")
        fields = {k: v for k, v in data.items() if k != "id"}
        try:
            payload = update_schema.model_validate(fields)
        except ValidationError as e:
            return send_error(400, "Validation Error", "Field validation failed", _validation_details(e))
        try:
            record = repo.update(record_id, payload.model_dump(exclude_none=True))
        except DuplicateRecordError as e:
            return send_error(409, "Conflict", str(e))
        except ValueError as e:
            return send_error(400, "Bad Request", str(e))
        if record is None:
            return send_error(404, "Not Found", f"{label} with ID {record_id} not found")
        return send_success(record, f"{label} updated successfully")

    @router.delete(prefix)
    def delete_record(id: Optional[int] = Query(None), data: Any = Body(None)):
        record_id = id
        if record_id is None and isinstance(data, dict):
            record_id = _as_int(data.get("id"))
        if record_id is None:
            return send_error(400, "Bad Request", "ID is required for deletion")
        record = repo.delete(record_id)
        if not record:
            return send_error(404, "Not Found", f"{label} with ID {record_id} not found")
        return send_success(record, f"{label} deleted successfully")

    return router
