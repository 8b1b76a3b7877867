"""FastAPI web application for Fundspace."""

import json
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import structlog
from fastapi import FastAPI, Depends, File, Form, Header, Query, Request, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.config import Settings, get_settings
from ..core.database_manager import DatabaseManager
from ..core.events import event_bus
from ..core.exceptions import (
    BaseFundspaceException,
    DatabaseError,
    PermissionDeniedError,
    ResourceNotFoundError,
    ValidationError,
    handle_fundspace_exception,
    handle_generic_exception,
    handle_http_exception,
)
from ..data.seed import seed_database
from ..repositories.organization_repository import OrganizationRepository
from ..repositories.profile_repository import ProfileRepository
from ..schemas.filters import FunderFilter, GrantFilter, NonprofitFilter, OrganizationFilter
from ..services.auth_service import AuthService
from ..services.catalog_service import CatalogService, serialize_record
from ..services.feed import FeedService
from ..services.follow_service import FollowService
from ..services.membership_service import MembershipService
from ..services.news_service import NewsService
from ..services.saved_grants_service import SavedGrantsService
from ..storage.object_storage import AVATARS, ObjectStorage
from ..storage.state_store import StateStore
from ..utils.logging import configure_logging
from ..wizard.backend import DatabaseSignupBackend
from ..wizard.machine import ImageUpload, SignupForm, SignUpWizard
from ..wizard.submission import SignupSubmitter

logger = structlog.get_logger(__name__)

bearer = HTTPBearer(auto_error=False)

RESERVED_QUERY_KEYS = {"sort", "page", "page_size"}


# Request bodies
class LoginRequest(BaseModel):
    email: str
    password: str


class RoleChangeRequest(BaseModel):
    role: str


class RecentSearchRequest(BaseModel):
    term: str


class PostRequest(BaseModel):
    content: str
    channel: str = "general"
    organization_id: Optional[str] = None


# Dependencies
async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.db.transaction() as session:
        yield session


def get_state_store(request: Request) -> StateStore:
    return request.app.state.state_store


async def current_profile_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    session: AsyncSession = Depends(get_session),
) -> str:
    """Id of the signed-in caller; a profile shares its account's id."""
    auth = AuthService(session, request.app.state.settings)
    account = await auth.get_current_account(credentials.credentials if credentials else "")
    return account.id


def _query_dict(request: Request) -> Dict[str, Any]:
    """Query parameters with repeated keys collected into lists."""
    params: Dict[str, Any] = {}
    for key in request.query_params.keys():
        if key in RESERVED_QUERY_KEYS:
            continue
        values = request.query_params.getlist(key)
        params[key] = values if len(values) > 1 else values[0]
    return params


def _as_int(value: Optional[str], default: Optional[int]) -> Optional[int]:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _listing_args(request: Request) -> Dict[str, Any]:
    return {
        "sort": request.query_params.get("sort"),
        "page": _as_int(request.query_params.get("page"), 1),
        "page_size": _as_int(request.query_params.get("page_size"), None),
    }


async def _image_upload(upload: Optional[UploadFile]) -> Optional[ImageUpload]:
    if upload is None or not upload.filename:
        return None
    data = await upload.read()
    return ImageUpload(data=data, filename=upload.filename, content_type=upload.content_type or "")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        configure_logging(settings)
        logger.info("Starting Fundspace API", version=settings.version)
        await app.state.db.create_all()
        if settings.seed_on_startup:
            await seed_database(app.state.db)
        app.state.state_store = StateStore(settings=settings)
        yield
        await app.state.db.shutdown()
        logger.info("Fundspace API stopped")

    app = FastAPI(
        title="Fundspace API",
        description="Grant discovery, funder directory and nonprofit onboarding API",
        version=settings.version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = DatabaseManager(settings)
    app.state.storage = ObjectStorage(settings)
    app.state.bus = event_bus

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BaseFundspaceException, handle_fundspace_exception)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_generic_exception)

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "description": "Grant discovery, funder directory and nonprofit onboarding API",
            "docs": "/docs",
            "health": "/health",
        }

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        database = await request.app.state.db.health_check()
        return {
            "status": database["status"],
            "service": settings.app_name,
            "version": settings.version,
            "database": database,
        }

    # Listings
    @app.get("/api/grants")
    async def list_grants(request: Request, session: AsyncSession = Depends(get_session)):
        filters = GrantFilter.model_validate(_query_dict(request))
        return await CatalogService(session, settings).grant_listing(filters, **_listing_args(request))

    @app.get("/api/funders")
    async def list_funders(request: Request, session: AsyncSession = Depends(get_session)):
        filters = FunderFilter.model_validate(_query_dict(request))
        return await CatalogService(session, settings).funder_listing(filters, **_listing_args(request))

    @app.get("/api/nonprofits")
    async def list_nonprofits(request: Request, session: AsyncSession = Depends(get_session)):
        filters = NonprofitFilter.model_validate(_query_dict(request))
        return await CatalogService(session, settings).nonprofit_listing(filters, **_listing_args(request))

    @app.get("/api/organizations")
    async def list_organizations(request: Request, session: AsyncSession = Depends(get_session)):
        filters = OrganizationFilter.model_validate(_query_dict(request))
        return await CatalogService(session, settings).organization_listing(filters, **_listing_args(request))

    @app.get("/api/organizations/search")
    async def search_organizations(
        q: str = Query("", description="Name fragment"),
        type: Optional[str] = Query(None, description="Organization type"),
        session: AsyncSession = Depends(get_session),
    ):
        """Name lookup for the join-an-organization step."""
        found = await OrganizationRepository(session).search_by_name(q, type)
        return {"items": [org.to_dict() for org in found]}

    @app.get("/api/taxonomies")
    async def taxonomy_tree(
        organization_type: Optional[str] = Query(None),
        session: AsyncSession = Depends(get_session),
    ):
        return {"items": await CatalogService(session, settings).taxonomy_tree(organization_type)}

    # Sign-up
    @app.post("/api/signup", status_code=status.HTTP_201_CREATED)
    async def signup(
        request: Request,
        form: str = Form(..., description="Sign-up form as JSON"),
        avatar: Optional[UploadFile] = File(None),
        logo: Optional[UploadFile] = File(None),
    ):
        try:
            signup_form = SignupForm.model_validate(json.loads(form))
        except (ValueError, PydanticValidationError) as e:
            raise ValidationError("Invalid sign-up form", details={"error": str(e)})

        updates: Dict[str, Any] = {}
        avatar_image = await _image_upload(avatar)
        if avatar_image is not None:
            updates["avatar"] = avatar_image
        logo_image = await _image_upload(logo)
        if logo_image is not None:
            updates["new_organization"] = signup_form.new_organization.model_copy(update={"logo": logo_image})
        if updates:
            signup_form = signup_form.model_copy(update=updates)

        backend = DatabaseSignupBackend(request.app.state.db, request.app.state.storage, settings)
        result = await SignupSubmitter(backend, request.app.state.bus, settings).submit(signup_form)
        return result.to_dict()

    @app.put("/api/signup/drafts/{key}")
    async def save_signup_draft(key: str, snapshot: Dict[str, Any], store: StateStore = Depends(get_state_store)):
        """Store a resumable wizard snapshot; passwords and files are never kept."""
        wizard = SignUpWizard.restore(snapshot, min_password_length=settings.min_password_length)
        saved = {"step": snapshot.get("step", int(wizard.step)), "form": wizard.snapshot()["form"]}
        store.save_draft(f"signup:{key}", saved)
        return saved

    @app.get("/api/signup/drafts/{key}")
    async def load_signup_draft(key: str, store: StateStore = Depends(get_state_store)):
        draft = store.load_draft(f"signup:{key}")
        if draft is None:
            raise ResourceNotFoundError("Draft", key)
        wizard = SignUpWizard.restore(draft, min_password_length=settings.min_password_length)
        return {
            **wizard.snapshot(),
            "display_step": wizard.display_step(),
            "total_steps": wizard.total_steps(),
            "step_title": wizard.step_title(),
        }

    @app.delete("/api/signup/drafts/{key}")
    async def clear_signup_draft(key: str, store: StateStore = Depends(get_state_store)):
        store.clear_draft(f"signup:{key}")
        return {"message": "Draft cleared"}

    # Auth
    @app.post("/api/auth/login")
    async def login(body: LoginRequest, session: AsyncSession = Depends(get_session)):
        return await AuthService(session, settings).login(body.email, body.password)

    @app.get("/api/auth/me")
    async def current_account(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
        session: AsyncSession = Depends(get_session),
    ):
        auth = AuthService(session, settings)
        account = await auth.get_current_account(credentials.credentials if credentials else "")
        profile = await ProfileRepository(session).get_by_id(account.id)
        return {
            "id": account.id,
            "email": account.email,
            "email_confirmed": auth.is_confirmed(account),
            "profile": profile.to_record().model_dump(mode="json") if profile else None,
        }

    # Profiles
    @app.post("/api/profiles/{profile_id}/avatar")
    async def upload_avatar(
        request: Request,
        profile_id: str,
        file: UploadFile = File(...),
        caller: str = Depends(current_profile_id),
        session: AsyncSession = Depends(get_session),
    ):
        if caller != profile_id:
            raise PermissionDeniedError("avatar", "update")
        image = await _image_upload(file)
        if image is None:
            raise ValidationError("An image file is required", details={"field": "file"})
        profiles = ProfileRepository(session)
        if not await profiles.exists(profile_id):
            raise ResourceNotFoundError("Profile", profile_id)
        url = request.app.state.storage.upload(AVATARS, image.filename, image.data, image.content_type, prefix="avatar")
        await profiles.update_profile(profile_id, {"avatar_url": url})
        return {"avatar_url": url}

    @app.get("/api/profiles/{profile_id}/saved-grants")
    async def saved_grants(profile_id: str, session: AsyncSession = Depends(get_session)):
        grants = await SavedGrantsService(session).saved_grants(profile_id)
        return {"items": [serialize_record(grant) for grant in grants]}

    @app.get("/api/profiles/{profile_id}/organization")
    async def profile_organization(profile_id: str, session: AsyncSession = Depends(get_session)):
        found = await MembershipService(session, app.state.bus).organization_for_profile(profile_id)
        if found is None:
            raise ResourceNotFoundError("Membership", profile_id)
        return found

    @app.post("/api/profiles/{profile_id}/follow")
    async def follow_profile(profile_id: str, follower_id: str = Depends(current_profile_id),
                             session: AsyncSession = Depends(get_session)):
        return await FollowService(session).set_following(follower_id, profile_id, follow=True)

    @app.delete("/api/profiles/{profile_id}/follow")
    async def unfollow_profile(profile_id: str, follower_id: str = Depends(current_profile_id),
                               session: AsyncSession = Depends(get_session)):
        return await FollowService(session).set_following(follower_id, profile_id, follow=False)

    # Saved grants
    @app.post("/api/grants/{grant_id}/save")
    async def save_grant(grant_id: int, profile_id: str = Depends(current_profile_id),
                         session: AsyncSession = Depends(get_session)):
        return await SavedGrantsService(session).save(profile_id, grant_id)

    @app.delete("/api/grants/{grant_id}/save")
    async def unsave_grant(grant_id: int, profile_id: str = Depends(current_profile_id),
                           session: AsyncSession = Depends(get_session)):
        return await SavedGrantsService(session).unsave(profile_id, grant_id)

    @app.post("/api/grants/{grant_id}/save/toggle")
    async def toggle_saved_grant(grant_id: int, profile_id: str = Depends(current_profile_id),
                                 session: AsyncSession = Depends(get_session)):
        service = SavedGrantsService(session)
        state = await service.load_state(profile_id, [grant_id])
        saved = await service.toggle(state, profile_id, grant_id)
        return {"grant_id": grant_id, "saved": saved, "save_count": state.count(grant_id)}

    # Memberships
    @app.post("/api/organizations", status_code=status.HTTP_201_CREATED)
    async def create_organization(body: Dict[str, Any], profile_id: str = Depends(current_profile_id),
                                  session: AsyncSession = Depends(get_session)):
        return await MembershipService(session, app.state.bus).create_organization(profile_id, body)

    @app.patch("/api/organizations/{organization_id}")
    async def update_organization(organization_id: str, body: Dict[str, Any],
                                  profile_id: str = Depends(current_profile_id),
                                  session: AsyncSession = Depends(get_session)):
        return await MembershipService(session, app.state.bus).update_organization(profile_id, organization_id, body)

    @app.delete("/api/organizations/{organization_id}")
    async def delete_organization(organization_id: str, profile_id: str = Depends(current_profile_id),
                                  session: AsyncSession = Depends(get_session)):
        deleted = await MembershipService(session, app.state.bus).delete_organization(profile_id, organization_id)
        if not deleted:
            raise ResourceNotFoundError("Organization", organization_id)
        return {"message": "Organization deleted"}

    @app.post("/api/organizations/{organization_id}/join")
    async def join_organization(organization_id: str, profile_id: str = Depends(current_profile_id),
                                session: AsyncSession = Depends(get_session)):
        return await MembershipService(session, app.state.bus).join(profile_id, organization_id)

    @app.delete("/api/organizations/{organization_id}/membership")
    async def leave_organization(organization_id: str, profile_id: str = Depends(current_profile_id),
                                 session: AsyncSession = Depends(get_session)):
        await MembershipService(session, app.state.bus).leave(profile_id, organization_id)
        return {"message": "Left organization"}

    @app.patch("/api/organizations/{organization_id}/members/{member_id}")
    async def change_member_role(organization_id: str, member_id: str, body: RoleChangeRequest,
                                 profile_id: str = Depends(current_profile_id),
                                 session: AsyncSession = Depends(get_session)):
        service = MembershipService(session, app.state.bus)
        return await service.change_role(profile_id, organization_id, member_id, body.role)

    @app.delete("/api/organizations/{organization_id}/members/{member_id}")
    async def remove_member(organization_id: str, member_id: str, profile_id: str = Depends(current_profile_id),
                            session: AsyncSession = Depends(get_session)):
        await MembershipService(session, app.state.bus).remove_member(profile_id, organization_id, member_id)
        return {"message": "Member removed"}

    # News and feed
    @app.get("/api/rss")
    async def rss(request: Request, category: Optional[str] = Query(None)):
        if not category:
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"success": False, "error": "Category parameter is required"},
            )
        try:
            async with request.app.state.db.transaction() as session:
                articles = await NewsService(session, settings).latest(category)
        except DatabaseError as e:
            logger.error("Error fetching articles", category=category, error=str(e))
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"success": False, "error": "Failed to fetch news from database."},
            )
        return {"success": True, "articles": articles}

    @app.get("/api/posts")
    async def recent_posts(channel: str = Query("general"), limit: int = Query(20, ge=1, le=100),
                           session: AsyncSession = Depends(get_session)):
        return {"items": await FeedService(session).recent(channel, limit)}

    @app.post("/api/posts", status_code=status.HTTP_201_CREATED)
    async def create_post(body: PostRequest, profile_id: str = Depends(current_profile_id),
                          session: AsyncSession = Depends(get_session)):
        return await FeedService(session).publish(profile_id, body.content, body.channel, body.organization_id)

    # Client state
    @app.get("/api/recent-searches")
    async def recent_searches(x_profile_id: Optional[str] = Header(default=None),
                              store: StateStore = Depends(get_state_store)):
        return {"items": store.recent_searches(x_profile_id or "anonymous")}

    @app.post("/api/recent-searches")
    async def add_recent_search(body: RecentSearchRequest, x_profile_id: Optional[str] = Header(default=None),
                                store: StateStore = Depends(get_state_store)):
        return {"items": store.add_recent_search(body.term, x_profile_id or "anonymous")}

    @app.delete("/api/recent-searches")
    async def clear_recent_searches(x_profile_id: Optional[str] = Header(default=None),
                                    store: StateStore = Depends(get_state_store)):
        store.clear_recent_searches(x_profile_id or "anonymous")
        return {"items": []}

    # Stored images
    @app.get(settings.public_storage_url.rstrip("/") + "/{bucket}/{name}")
    async def stored_object(request: Request, bucket: str, name: str):
        path = request.app.state.storage.path_for(bucket, name)
        if not path.exists():
            raise ResourceNotFoundError("Object", f"{bucket}/{name}")
        return FileResponse(path)

    return app


app = create_app()
