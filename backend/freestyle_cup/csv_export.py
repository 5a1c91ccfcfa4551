from __future__ import annotations

import csv
from io import StringIO

from fastapi import APIRouter, Depends
from starlette.responses import Response
from sqlalchemy.orm import Session

from .db import get_session
from .auth import admin_required
from .catalog import list_acts
from .prediction import CategoryEntry, load_timeplan

router = APIRouter()

def _csv_response(filename: str, text: str) -> Response:
    return Response(
        content=text,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

def _iso(dt) -> str:
    return dt.isoformat() if dt else ""

@router.get("/startlist.csv", dependencies=[Depends(admin_required)])
def startlist_csv(session: Session = Depends(get_session)):
    buf = StringIO()
    w = csv.writer(buf)
    w.writerow(["category", "act_order", "act_id", "act_name", "participants", "clubs"])
    for a in list_acts(session):
        w.writerow([
            a.category or "",
            "" if a.act_order is None else a.act_order,
            a.id,
            a.name,
            " & ".join(f"{p.firstname} {p.lastname}" for p in a.participants),
            " & ".join(sorted({p.club_name for p in a.participants})),
        ])
    return _csv_response("startlist.csv", buf.getvalue())

@router.get("/timeplan.csv", dependencies=[Depends(admin_required)])
def timeplan_csv(session: Session = Depends(get_session)):
    plan = load_timeplan(session)
    buf = StringIO()
    w = csv.writer(buf)
    w.writerow(["entry", "act", "status", "planned_start", "predicted_start", "predicted_end", "real_start", "real_end"])
    for item in plan.items:
        entry = item.timeplan_entry
        label = entry.name if isinstance(entry, CategoryEntry) else entry.label
        w.writerow([
            label, "", item.status.value,
            _iso(item.planned_start), _iso(item.predicted_start), _iso(item.predicted_end),
            _iso(item.real_start), _iso(item.real_end),
        ])
        if isinstance(entry, CategoryEntry):
            for act in entry.acts:
                w.writerow([
                    label, act.name or act.id, act.status.value,
                    _iso(act.planned_start), _iso(act.predicted_start), _iso(act.predicted_end),
                    _iso(act.started_at), _iso(act.ended_at),
                ])
    return _csv_response("timeplan.csv", buf.getvalue())
