"""Customer segment routes and block ↔ segment links.

Endpoints:
  GET    /canvas/{canvas_id}/segments/                           — List segments (priority desc)
  POST   /canvas/{canvas_id}/segments/                           — Create a segment
  GET    /canvas/{canvas_id}/segments/{segment_id}               — Get one segment
  PATCH  /canvas/{canvas_id}/segments/{segment_id}               — Update a segment
  DELETE /canvas/{canvas_id}/segments/{segment_id}               — Delete a segment and its links
  POST   /canvas/{canvas_id}/blocks/{block_type}/segments        — Link a segment to a block
  DELETE /canvas/{canvas_id}/blocks/{block_type}/segments        — Unlink (?segment_id=...)
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.canvas import Block, Canvas
from ..models.segment import Segment
from ..schemas.canvas_schema import BlockType
from ..schemas.segment_schema import (
    SegmentCreate,
    SegmentLinkRequest,
    SegmentLinkResponse,
    SegmentListResponse,
    SegmentRecord,
    SegmentUpdate,
)
from ..services.auth_dependency import get_owned_canvas
from ..services.segment_service import (
    create_segment,
    delete_segment,
    get_segment_row,
    link_segment,
    list_segments,
    to_segment_record,
    unlink_segment,
    update_segment,
)

router = APIRouter(
    prefix="/canvas/{canvas_id}",
    tags=["Segments"],
)


def _owned_segment(
    segment_id: UUID,
    canvas: Canvas = Depends(get_owned_canvas),
    db: Session = Depends(get_db),
) -> Segment:
    row = get_segment_row(db, canvas, segment_id)
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Segment {segment_id} not found",
        )
    return row


def _owned_block(
    block_type: BlockType,
    canvas: Canvas = Depends(get_owned_canvas),
    db: Session = Depends(get_db),
) -> Block:
    block = (
        db.query(Block)
        .filter(Block.canvas_id == str(canvas.id), Block.block_type == block_type)
        .first()
    )
    if block is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Block not found")
    return block


@router.get("/segments/", response_model=SegmentListResponse, summary="List customer segments")
def get_segments(
    canvas: Canvas = Depends(get_owned_canvas),
    db: Session = Depends(get_db),
) -> SegmentListResponse:
    return SegmentListResponse(records=list_segments(db, canvas))


@router.post(
    "/segments/",
    response_model=SegmentRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Create a customer segment",
)
def post_segment(
    payload: SegmentCreate,
    canvas: Canvas = Depends(get_owned_canvas),
    db: Session = Depends(get_db),
) -> SegmentRecord:
    record = create_segment(db, canvas, payload)
    print(f"👥 [SEGMENTS] Created segment '{record.name}' on canvas {canvas.id}")
    return record


@router.get("/segments/{segment_id}", response_model=SegmentRecord, summary="Get a customer segment")
def get_segment(row: Segment = Depends(_owned_segment)) -> SegmentRecord:
    return to_segment_record(row)


@router.patch("/segments/{segment_id}", response_model=SegmentRecord, summary="Update a customer segment")
def patch_segment(
    payload: SegmentUpdate,
    row: Segment = Depends(_owned_segment),
    db: Session = Depends(get_db),
) -> SegmentRecord:
    return update_segment(db, row, payload)


@router.delete("/segments/{segment_id}", summary="Delete a customer segment")
def remove_segment(
    row: Segment = Depends(_owned_segment),
    db: Session = Depends(get_db),
) -> dict:
    delete_segment(db, row)
    return {"success": True}


@router.post(
    "/blocks/{block_type}/segments",
    response_model=SegmentLinkResponse,
    summary="Link a segment to a block",
    response_description="201 when the link was created, 200 when it already existed",
)
def post_block_segment(
    payload: SegmentLinkRequest,
    response: Response,
    canvas: Canvas = Depends(get_owned_canvas),
    block: Block = Depends(_owned_block),
    db: Session = Depends(get_db),
) -> SegmentLinkResponse:
    segment = get_segment_row(db, canvas, payload.segment_id)
    if segment is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Segment {payload.segment_id} not found",
        )

    _, created = link_segment(db, block, segment)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return SegmentLinkResponse(block_type=block.block_type, segment_id=str(segment.id), created=created)


@router.delete("/blocks/{block_type}/segments", summary="Unlink a segment from a block")
def remove_block_segment(
    segment_id: str = Query(..., min_length=1),
    block: Block = Depends(_owned_block),
    db: Session = Depends(get_db),
) -> dict:
    unlink_segment(db, block, segment_id)
    return {"success": True}
