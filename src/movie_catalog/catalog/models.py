"""Models for category and movie requests and responses."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import ConfigDict, Field

from movie_catalog.identity.models import CamelModel


class Classification(StrEnum):
    """Minimum audience age for a movie."""

    SEVEN = "7"
    THIRTEEN = "13"
    SIXTEEN = "16"
    EIGHTEEN = "18"


class CatalogRequest(CamelModel):
    """Base for catalog payloads; text fields are stripped before validation."""

    model_config = ConfigDict(str_strip_whitespace=True)


class Category(CamelModel):
    """A movie category."""

    id: int
    name: str
    created_at: datetime


class CategoryRequest(CatalogRequest):
    """Payload for creating or renaming a category."""

    name: str = Field(min_length=1, max_length=100)


class Movie(CamelModel):
    """A movie in the catalog."""

    id: int
    name: str
    description: str
    duration: int
    image_url: str | None
    classification: Classification
    category_id: int
    created_at: datetime


class MovieRequest(CatalogRequest):
    """Payload for creating a movie."""

    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    duration: int = Field(ge=0)
    image_url: str | None = None
    classification: Classification
    category_id: int


class MovieUpdate(CatalogRequest):
    """Partial update of a movie; unset fields keep their value."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    duration: int | None = Field(default=None, ge=0)
    image_url: str | None = None
    classification: Classification | None = None
    category_id: int | None = None


class MoviePage(CamelModel):
    """A page of movies ordered by name.

    :param page: Current page number
    :param page_size: Number of items per page
    :param total_count: Total number of movies
    :param total_pages: Total number of pages
    :param items: Movies on the current page
    """

    page: int
    page_size: int
    total_count: int
    total_pages: int
    items: list[Movie]

    @classmethod
    def from_query_params(
        cls,
        page: int,
        page_size: int,
        items: list[Movie],
        total_count: int,
    ) -> MoviePage:
        """Create a page from query parameters.

        :param page: Current page number
        :param page_size: Number of items per page
        :param items: Movies on the current page
        :param total_count: Total number of movies
        :return: MoviePage instance
        """
        total_pages = (total_count + page_size - 1) // page_size
        return cls(
            page=page,
            page_size=page_size,
            total_count=total_count,
            total_pages=total_pages,
            items=items,
        )
