import logging
from typing import Optional

from fastapi import FastAPI, Request, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .settings import settings
from .db import init_db, get_session, reload_db, session_factory
from . import models, services, catalog, pairing, timeplan, prediction
from .auth import (
    CurrentUser,
    get_current_user,
    login_required,
    admin_required,
    assert_can_access_club,
    set_login_cookie,
    clear_login_cookie,
    AuthCookieMiddleware,
)
from .errors import CupError, NotFoundError
from .schemas import (
    ActEdit,
    ActOrderSet,
    LoginBody,
    SongChecked,
    StarterCreate,
    StarterDelete,
    StarterEdit,
)
from .system_status import act_editing_open, get_capabilities, starter_registration_open

logger = logging.getLogger(__name__)

app = FastAPI(title="Freestyle Cup Registration")
app.add_middleware(AuthCookieMiddleware)

@app.on_event("startup")
def _startup() -> None:
    logging.basicConfig(
        level=settings.CUP_LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db()
    # Ensure the bootstrap admin account exists
    s = session_factory()()
    try:
        services.ensure_admin_user(s)
    finally:
        s.close()

# ---------------------------
# Errors
# ---------------------------

@app.exception_handler(CupError)
def _cup_error(request: Request, exc: CupError):
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse({"detail": exc.message}, status_code=exc.status_code)

@app.exception_handler(SQLAlchemyError)
def _storage_error(request: Request, exc: SQLAlchemyError):
    logger.exception("Storage failure on %s", request.url.path, exc_info=exc)
    return JSONResponse({"detail": "Internal server error"}, status_code=500)

# ---------------------------
# Auth
# ---------------------------

@app.post("/api/command/login")
def login(request: Request, body: LoginBody, session=Depends(get_session)):
    u = services.authenticate_user(session, email=body.email.strip(), password=body.password)
    if not u:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    set_login_cookie(request, user_id=u.id, name=u.name, email=u.email, is_admin=u.is_admin, club_id=u.club_id)
    return {"id": u.id, "name": u.name, "is_admin": u.is_admin, "club_id": u.club_id}

@app.post("/api/command/logout")
def logout(request: Request):
    clear_login_cookie(request)
    return {}

@app.get("/api/query/whoami")
def whoami(user: CurrentUser = Depends(login_required)):
    return user

@app.get("/api/query/system_status")
def system_status(caps=Depends(get_capabilities)):
    return caps

@app.post("/api/command/reload_db")
def reload_db_command(token: Optional[str] = None, user: Optional[CurrentUser] = Depends(get_current_user)):
    is_admin = bool(user and user.is_admin)
    token_ok = settings.CUP_RELOAD_DB_TOKEN is not None and token == settings.CUP_RELOAD_DB_TOKEN
    if not is_admin and not token_ok:
        raise HTTPException(status_code=403, detail="Forbidden")
    reload_db()
    return {}

# ---------------------------
# Starters (pairing)
# ---------------------------

def _starter_for_user(session, user: CurrentUser, starter_id: str) -> models.Starter:
    starter = session.get(models.Starter, starter_id)
    if starter is None:
        raise NotFoundError("Starter not found")
    assert_can_access_club(user, starter.club_id)
    return starter

@app.post("/api/command/add_club_starter", dependencies=[Depends(starter_registration_open)])
def add_club_starter(body: StarterCreate, user: CurrentUser = Depends(login_required), session=Depends(get_session)):
    assert_can_access_club(user, body.club_id)
    starter = pairing.add_starter(session, body)
    return {"starter_id": starter.id}

@app.post("/api/command/edit_club_starter", dependencies=[Depends(starter_registration_open)])
def edit_club_starter(body: StarterEdit, user: CurrentUser = Depends(login_required), session=Depends(get_session)):
    _starter_for_user(session, user, body.starter_id)
    pairing.edit_starter(session, body)
    return {}

@app.post("/api/command/delete_club_starter", dependencies=[Depends(starter_registration_open)])
def delete_club_starter(body: StarterDelete, user: CurrentUser = Depends(login_required), session=Depends(get_session)):
    _starter_for_user(session, user, body.starter_id)
    pairing.delete_starter(session, body.starter_id)
    return {}

@app.get("/api/query/list_club_starters")
def list_club_starters(club_id: str, user: CurrentUser = Depends(login_required), session=Depends(get_session)):
    assert_can_access_club(user, club_id)
    services.get_club(session, club_id)
    return pairing.list_club_starters(session, club_id)

# ---------------------------
# Acts
# ---------------------------

@app.post("/api/command/set_act_order", dependencies=[Depends(admin_required)])
def set_act_order(body: ActOrderSet, session=Depends(get_session)):
    services.set_act_order(session, body)
    return {}

@app.post("/api/command/set_song_checked", dependencies=[Depends(admin_required)])
def set_song_checked(body: SongChecked, session=Depends(get_session)):
    services.set_song_checked(session, body)
    return {}

@app.post("/api/command/edit_club_act", dependencies=[Depends(act_editing_open)])
def edit_club_act(body: ActEdit, user: CurrentUser = Depends(login_required), session=Depends(get_session)):
    if not user.is_admin and user.club_id not in services.act_club_ids(session, body.id):
        raise HTTPException(status_code=403, detail="Not allowed for this act")
    services.edit_act(session, body)
    return {}

@app.get("/api/query/list_categories")
def list_categories(session=Depends(get_session)):
    return [
        {
            "name": c.name,
            "description": c.description,
            "from_birthday": c.from_birthday,
            "to_birthday": c.to_birthday,
            "is_pair": c.is_pair,
            "is_sonderpokal": c.is_sonderpokal,
            "is_single_male": c.is_single_male,
            "order": c.order,
        }
        for c in catalog.list_categories(session)
    ]

@app.get("/api/query/list_acts", dependencies=[Depends(admin_required)])
def list_acts(session=Depends(get_session)):
    return catalog.list_acts(session)

@app.get("/api/query/list_club_acts")
def list_club_acts(club_id: str, user: CurrentUser = Depends(login_required), session=Depends(get_session)):
    assert_can_access_club(user, club_id)
    return catalog.list_acts(session, club_id=club_id)

@app.get("/api/query/startlist")
def startlist(session=Depends(get_session)):
    return [
        {
            "id": a.id,
            "name": a.name,
            "is_pair": a.is_pair,
            "is_sonderpokal": a.is_sonderpokal,
            "category": a.category,
            "category_order": a.category_order,
            "act_order": a.act_order,
            "participants": a.participants,
        }
        for a in catalog.list_acts(session)
    ]

# ---------------------------
# Timeplan
# ---------------------------

@app.post("/api/command/timeplan_forward", dependencies=[Depends(admin_required)])
def timeplan_forward(session=Depends(get_session)):
    return timeplan.advance_timeplan(session)

@app.post("/api/command/timeplan_backward", dependencies=[Depends(admin_required)])
def timeplan_backward(session=Depends(get_session)):
    return timeplan.rewind_timeplan(session)

@app.get("/api/query/predict_timeplan")
def predict_timeplan(session=Depends(get_session)):
    return prediction.load_timeplan(session)

from .csv_export import router as csv_router
app.include_router(csv_router, prefix="/api/query", tags=["csv"])
