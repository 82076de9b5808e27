"""
Picking API - pick list generation and execution
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import UUID

from stockflow.core.database import get_db
from stockflow.schemas.picking import (
    GeneratePickListRequest, PickListActionRequest, PickListItemResponse, PickListResponse,
    PickProgressResponse, PickRequest, PickResultResponse, ReassignRequest
)
from stockflow.services import PickExecutionService, PickListService

router = APIRouter(prefix="/picking", tags=["Picking"])


@router.post("/generate", response_model=PickListResponse, status_code=201)
def generate_pick_list(data: GeneratePickListRequest, db: Session = Depends(get_db)):
    return PickListService.generate_pick_list(
        db, data.actor,
        order_ids=data.order_ids,
        assign_to=data.assign_to,
        max_items=data.max_items,
        priority=data.priority,
        notes=data.notes,
    )


@router.get("/lists/{pick_list_id}", response_model=PickListResponse)
def get_pick_list(pick_list_id: UUID, db: Session = Depends(get_db)):
    return PickListService.get_pick_list(db, pick_list_id)


@router.get("/lists/{pick_list_id}/progress", response_model=PickProgressResponse)
def pick_list_progress(pick_list_id: UUID, db: Session = Depends(get_db)):
    progress = PickExecutionService.get_progress(db, pick_list_id)
    return PickProgressResponse.model_validate(progress, from_attributes=True)


@router.post("/items/{item_id}/pick", response_model=PickResultResponse)
def record_pick(item_id: UUID, data: PickRequest, db: Session = Depends(get_db)):
    result = PickExecutionService.record_pick(
        db, item_id, data.action, data.actor,
        quantity=data.quantity, reason=data.reason,
        location=data.location, notes=data.notes,
    )
    return PickResultResponse(
        item=PickListItemResponse.model_validate(result.item),
        pick_list_status=result.pick_list.status,
        picked_items=result.pick_list.picked_items,
        total_items=result.pick_list.total_items,
        quantity_picked=result.quantity_picked,
        list_completed=result.list_completed,
    )


@router.post("/lists/{pick_list_id}/pause", response_model=PickListResponse)
def pause_pick_list(pick_list_id: UUID, data: PickListActionRequest, db: Session = Depends(get_db)):
    return PickExecutionService.pause_pick_list(db, pick_list_id, data.actor, data.notes)


@router.post("/lists/{pick_list_id}/resume", response_model=PickListResponse)
def resume_pick_list(pick_list_id: UUID, data: PickListActionRequest, db: Session = Depends(get_db)):
    return PickExecutionService.resume_pick_list(db, pick_list_id, data.actor, data.notes)


@router.post("/lists/{pick_list_id}/reassign", response_model=PickListResponse)
def reassign_pick_list(pick_list_id: UUID, data: ReassignRequest, db: Session = Depends(get_db)):
    return PickExecutionService.reassign_pick_list(
        db, pick_list_id, data.new_assignee, data.actor, data.reason, data.notes
    )


@router.post("/lists/{pick_list_id}/cancel", response_model=PickListResponse)
def cancel_pick_list(pick_list_id: UUID, data: PickListActionRequest, db: Session = Depends(get_db)):
    return PickExecutionService.cancel_pick_list(db, pick_list_id, data.actor, data.notes)
