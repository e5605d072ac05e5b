"""Category and movie routes for the FastAPI application.

Reads are public; writes require the Admin role.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from movie_catalog.common import Role
from movie_catalog.identity.token_issuer import SessionClaims
from movie_catalog.identity.validation import Validate

from .models import (
    Category,
    CategoryRequest,
    Movie,
    MoviePage,
    MovieRequest,
    MovieUpdate,
)
from .queries import CatalogError, CatalogQueries, DuplicateNameError

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)

MAX_PAGE_SIZE = 100


def get_catalog_queries(request: Request) -> CatalogQueries:
    """Return the catalog queries opened by the application lifespan."""
    return request.app.state.catalog_queries


QueriesDependency = Annotated[CatalogQueries, Depends(get_catalog_queries)]


def _not_found(kind: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{kind} not found",
    )


def _bad_request(e: CatalogError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


async def _create_category(
    queries: CatalogQueries,
    request: CategoryRequest,
    admin: SessionClaims,
) -> Category:
    if await queries.category_exists(request.name):
        raise _bad_request(DuplicateNameError("Category already exists"))
    try:
        category = await queries.create_category(request.name)
    except CatalogError as e:
        raise _bad_request(e) from e
    LOGGER.debug("Category %s created by %s", category.name, admin.name)
    return category


async def _update_category(
    queries: CatalogQueries,
    category_id: int,
    request: CategoryRequest,
) -> Category:
    try:
        category = await queries.update_category(category_id, request.name)
    except CatalogError as e:
        raise _bad_request(e) from e
    if category is None:
        raise _not_found("Category")
    return category


async def _list_movies(queries: CatalogQueries, page: int, page_size: int) -> MoviePage:
    items = await queries.list_movies(page, page_size)
    total_count = await queries.count_movies()
    return MoviePage.from_query_params(page, page_size, items, total_count)


async def _create_movie(
    queries: CatalogQueries,
    request: MovieRequest,
    admin: SessionClaims,
) -> Movie:
    if await queries.movie_exists(request.name):
        raise _bad_request(DuplicateNameError("Movie already exists"))
    try:
        movie = await queries.create_movie(request)
    except CatalogError as e:
        raise _bad_request(e) from e
    LOGGER.debug("Movie %s created by %s", movie.name, admin.name)
    return movie


async def _update_movie(
    queries: CatalogQueries,
    movie_id: int,
    request: MovieUpdate,
) -> Movie:
    existing = await queries.get_movie(movie_id)
    if existing is None:
        raise _not_found("Movie")

    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    try:
        movie = await queries.update_movie(existing.model_copy(update=changes))
    except CatalogError as e:
        raise _bad_request(e) from e
    if movie is None:
        raise _not_found("Movie")
    return movie


def configure_catalog_router(router: APIRouter, validate: Validate) -> APIRouter:
    """Configure the catalog router.

    Routes resolve the CatalogQueries per request through
    :func:`get_catalog_queries`.

    :param router: The APIRouter to configure
    :param validate: Validator dependencies for protected routes
    :return: The configured APIRouter
    """
    require_admin = validate.role(Role.ADMIN)

    @router.get("/categories", response_model=list[Category])
    async def list_categories(queries: QueriesDependency) -> list[Category]:
        return await queries.list_categories()

    @router.get("/categories/{category_id}", response_model=Category)
    async def get_category(
        category_id: int,
        queries: QueriesDependency,
    ) -> Category:
        category = await queries.get_category(category_id)
        if category is None:
            raise _not_found("Category")
        return category

    @router.get("/categories/{category_id}/movies", response_model=list[Movie])
    async def list_movies_in_category(
        category_id: int,
        queries: QueriesDependency,
    ) -> list[Movie]:
        if await queries.get_category(category_id) is None:
            raise _not_found("Category")
        return await queries.list_movies_in_category(category_id)

    @router.post(
        "/categories",
        response_model=Category,
        status_code=status.HTTP_201_CREATED,
    )
    async def create_category(
        request: CategoryRequest,
        admin: Annotated[SessionClaims, Depends(require_admin)],
        queries: QueriesDependency,
    ) -> Category:
        return await _create_category(queries, request, admin)

    @router.patch("/categories/{category_id}", response_model=Category)
    async def update_category(
        category_id: int,
        request: CategoryRequest,
        _admin: Annotated[SessionClaims, Depends(require_admin)],
        queries: QueriesDependency,
    ) -> Category:
        return await _update_category(queries, category_id, request)

    @router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_category(
        category_id: int,
        _admin: Annotated[SessionClaims, Depends(require_admin)],
        queries: QueriesDependency,
    ) -> None:
        if not await queries.delete_category(category_id):
            raise _not_found("Category")

    @router.get("/movies", response_model=MoviePage)
    async def list_movies(
        queries: QueriesDependency,
        page: Annotated[int, Query(ge=1)] = 1,
        page_size: Annotated[
            int,
            Query(alias="pageSize", ge=1, le=MAX_PAGE_SIZE),
        ] = 10,
    ) -> MoviePage:
        return await _list_movies(queries, page, page_size)

    @router.get("/movies/search", response_model=list[Movie])
    async def search_movies(
        queries: QueriesDependency,
        name: str = "",
    ) -> list[Movie]:
        return await queries.search_movies(name.strip())

    @router.get("/movies/{movie_id}", response_model=Movie)
    async def get_movie(movie_id: int, queries: QueriesDependency) -> Movie:
        movie = await queries.get_movie(movie_id)
        if movie is None:
            raise _not_found("Movie")
        return movie

    @router.post("/movies", response_model=Movie, status_code=status.HTTP_201_CREATED)
    async def create_movie(
        request: MovieRequest,
        admin: Annotated[SessionClaims, Depends(require_admin)],
        queries: QueriesDependency,
    ) -> Movie:
        return await _create_movie(queries, request, admin)

    @router.patch("/movies/{movie_id}", response_model=Movie)
    async def update_movie(
        movie_id: int,
        request: MovieUpdate,
        _admin: Annotated[SessionClaims, Depends(require_admin)],
        queries: QueriesDependency,
    ) -> Movie:
        return await _update_movie(queries, movie_id, request)

    @router.delete("/movies/{movie_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_movie(
        movie_id: int,
        _admin: Annotated[SessionClaims, Depends(require_admin)],
        queries: QueriesDependency,
    ) -> None:
        if not await queries.delete_movie(movie_id):
            raise _not_found("Movie")

    return router
