"""Category and movie persistence.

Using the CatalogQueries class as a repository for catalog queries.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import aiosqlite

from .models import Category, Classification, Movie

if TYPE_CHECKING:
    from aiosqlite import Connection

    from .models import MovieRequest

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)


class CatalogError(Exception):
    """Base exception for catalog failures."""


class DuplicateNameError(CatalogError):
    """Raised when a category or movie name is already taken."""


class UnknownCategoryError(CatalogError):
    """Raised when a movie refers to a category that does not exist."""


def _integrity_error(e: aiosqlite.IntegrityError, name: str) -> CatalogError:
    if "FOREIGN KEY" in str(e):
        return UnknownCategoryError("Category does not exist")
    return DuplicateNameError(f"Name already exists: {name}")


class CatalogQueries:
    """Repository for category and movie queries."""

    CREATE_CATEGORIES_TABLE = """
        CREATE TABLE IF NOT EXISTS categories (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE COLLATE NOCASE,
            created_at TIMESTAMP NOT NULL
        );
        """

    CREATE_MOVIES_TABLE = """
        CREATE TABLE IF NOT EXISTS movies (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE COLLATE NOCASE,
            description TEXT NOT NULL DEFAULT '',
            duration INTEGER NOT NULL DEFAULT 0,
            image_url TEXT,
            classification TEXT NOT NULL,
            category_id INTEGER NOT NULL,
            created_at TIMESTAMP NOT NULL,
            FOREIGN KEY (category_id) REFERENCES categories (id) ON DELETE CASCADE
        );
        """

    MOVIE_COLUMNS = (
        "id, name, description, duration, image_url, classification, "
        "category_id, created_at"
    )

    LIST_CATEGORIES = """
        SELECT id, name, created_at FROM categories ORDER BY name;
        """

    GET_CATEGORY = """
        SELECT id, name, created_at FROM categories WHERE id = ?;
        """

    CATEGORY_NAME_EXISTS = """
        SELECT 1 FROM categories WHERE lower(trim(name)) = lower(trim(?));
        """

    ADD_CATEGORY = """
        INSERT INTO categories (name, created_at) VALUES (?, ?);
        """

    UPDATE_CATEGORY = """
        UPDATE categories SET name = ?, created_at = ? WHERE id = ?;
        """

    DELETE_CATEGORY = """
        DELETE FROM categories WHERE id = ?;
        """

    LIST_MOVIES = f"""
        SELECT {MOVIE_COLUMNS} FROM movies ORDER BY name LIMIT ? OFFSET ?;
        """  # noqa: S608

    COUNT_MOVIES = """SELECT COUNT(*) FROM movies;"""

    GET_MOVIE = f"""
        SELECT {MOVIE_COLUMNS} FROM movies WHERE id = ?;
        """  # noqa: S608

    MOVIE_NAME_EXISTS = """
        SELECT 1 FROM movies WHERE lower(trim(name)) = lower(trim(?));
        """

    LIST_MOVIES_IN_CATEGORY = f"""
        SELECT {MOVIE_COLUMNS} FROM movies WHERE category_id = ? ORDER BY name;
        """  # noqa: S608

    SEARCH_MOVIES = f"""
        SELECT {MOVIE_COLUMNS} FROM movies
        WHERE instr(lower(name), lower(?)) > 0
            OR instr(lower(description), lower(?)) > 0
        ORDER BY name;
        """  # noqa: S608

    ADD_MOVIE = """
        INSERT INTO movies (
            name, description, duration, image_url, classification,
            category_id, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?);
        """

    UPDATE_MOVIE = """
        UPDATE movies SET
            name = ?, description = ?, duration = ?, image_url = ?,
            classification = ?, category_id = ?, created_at = ?
        WHERE id = ?;
        """

    DELETE_MOVIE = """
        DELETE FROM movies WHERE id = ?;
        """

    def __init__(self, connection: Connection) -> None:
        """Create a CatalogQueries instance.

        :param connection: Database connection, ideally in autocommit mode
        """
        self.connection = connection

    async def initialize_tables(self) -> None:
        """Create the categories and movies tables if they do not exist."""
        await self.connection.execute("PRAGMA foreign_keys = ON;")
        await self.connection.execute(CatalogQueries.CREATE_CATEGORIES_TABLE)
        await self.connection.execute(CatalogQueries.CREATE_MOVIES_TABLE)
        await self.connection.commit()

    @staticmethod
    def _row_to_category(row: tuple) -> Category:
        return Category(id=row[0], name=row[1], created_at=row[2])

    @staticmethod
    def _row_to_movie(row: tuple) -> Movie:
        return Movie(
            id=row[0],
            name=row[1],
            description=row[2],
            duration=row[3],
            image_url=row[4],
            classification=Classification(row[5]),
            category_id=row[6],
            created_at=row[7],
        )

    async def _exists(self, query: str, value: str) -> bool:
        result = await self.connection.execute(query, (value,))
        return await result.fetchone() is not None

    async def list_categories(self) -> list[Category]:
        """Return every category ordered by name."""
        result = await self.connection.execute(CatalogQueries.LIST_CATEGORIES)
        return [self._row_to_category(row) for row in await result.fetchall()]

    async def get_category(self, category_id: int) -> Category | None:
        """Return the category with the given id, or None."""
        result = await self.connection.execute(
            CatalogQueries.GET_CATEGORY,
            (category_id,),
        )
        row = await result.fetchone()
        return self._row_to_category(row) if row else None

    async def category_exists(self, name: str) -> bool:
        """Check for a category name, ignoring case and surrounding spaces."""
        return await self._exists(CatalogQueries.CATEGORY_NAME_EXISTS, name)

    async def create_category(self, name: str) -> Category:
        """Create a category.

        :param name: Category name
        :return: The stored category
        :raises DuplicateNameError: If the name is already taken
        """
        created_at = datetime.now(UTC)
        try:
            result = await self.connection.execute(
                CatalogQueries.ADD_CATEGORY,
                (name, created_at.isoformat()),
            )
            await self.connection.commit()
        except aiosqlite.IntegrityError as e:
            raise _integrity_error(e, name) from e

        LOGGER.debug("Created category %s", name)
        return Category(id=result.lastrowid, name=name, created_at=created_at)

    async def update_category(self, category_id: int, name: str) -> Category | None:
        """Rename a category and refresh its timestamp.

        :param category_id: Id of the category to rename
        :param name: New name
        :return: The updated category, or None if it does not exist
        :raises DuplicateNameError: If the name is already taken
        """
        created_at = datetime.now(UTC)
        try:
            result = await self.connection.execute(
                CatalogQueries.UPDATE_CATEGORY,
                (name, created_at.isoformat(), category_id),
            )
            await self.connection.commit()
        except aiosqlite.IntegrityError as e:
            raise _integrity_error(e, name) from e

        if not result.rowcount:
            return None
        return Category(id=category_id, name=name, created_at=created_at)

    async def delete_category(self, category_id: int) -> bool:
        """Delete a category and, through the foreign key, its movies.

        :return: True if a category was deleted
        """
        result = await self.connection.execute(
            CatalogQueries.DELETE_CATEGORY,
            (category_id,),
        )
        await self.connection.commit()
        return bool(result.rowcount)

    async def list_movies(self, page: int = 1, page_size: int = 10) -> list[Movie]:
        """Return one page of movies ordered by name.

        :param page: Page number (1-based)
        :param page_size: Number of movies per page
        """
        offset = (page - 1) * page_size
        result = await self.connection.execute(
            CatalogQueries.LIST_MOVIES,
            (page_size, offset),
        )
        return [self._row_to_movie(row) for row in await result.fetchall()]

    async def count_movies(self) -> int:
        """Return the total number of movies."""
        result = await self.connection.execute(CatalogQueries.COUNT_MOVIES)
        row = await result.fetchone()
        return row[0] if row else 0

    async def get_movie(self, movie_id: int) -> Movie | None:
        """Return the movie with the given id, or None."""
        result = await self.connection.execute(CatalogQueries.GET_MOVIE, (movie_id,))
        row = await result.fetchone()
        return self._row_to_movie(row) if row else None

    async def movie_exists(self, name: str) -> bool:
        """Check for a movie name, ignoring case and surrounding spaces."""
        return await self._exists(CatalogQueries.MOVIE_NAME_EXISTS, name)

    async def list_movies_in_category(self, category_id: int) -> list[Movie]:
        """Return the movies of one category ordered by name."""
        result = await self.connection.execute(
            CatalogQueries.LIST_MOVIES_IN_CATEGORY,
            (category_id,),
        )
        return [self._row_to_movie(row) for row in await result.fetchall()]

    async def search_movies(self, term: str) -> list[Movie]:
        """Return movies whose name or description contains the term.

        An empty term matches every movie.
        """
        result = await self.connection.execute(
            CatalogQueries.SEARCH_MOVIES,
            (term, term),
        )
        return [self._row_to_movie(row) for row in await result.fetchall()]

    async def create_movie(self, request: MovieRequest) -> Movie:
        """Create a movie.

        :param request: Movie fields
        :return: The stored movie
        :raises DuplicateNameError: If the name is already taken
        :raises UnknownCategoryError: If the category does not exist
        """
        created_at = datetime.now(UTC)
        try:
            result = await self.connection.execute(
                CatalogQueries.ADD_MOVIE,
                (
                    request.name,
                    request.description,
                    request.duration,
                    request.image_url,
                    str(request.classification),
                    request.category_id,
                    created_at.isoformat(),
                ),
            )
            await self.connection.commit()
        except aiosqlite.IntegrityError as e:
            raise _integrity_error(e, request.name) from e

        LOGGER.debug("Created movie %s", request.name)
        return Movie(
            id=result.lastrowid,
            created_at=created_at,
            **request.model_dump(),
        )

    async def update_movie(self, movie: Movie) -> Movie | None:
        """Overwrite a movie's fields and refresh its timestamp.

        :param movie: The movie with its new field values
        :return: The updated movie, or None if it does not exist
        :raises DuplicateNameError: If the name is already taken
        :raises UnknownCategoryError: If the category does not exist
        """
        updated = movie.model_copy(update={"created_at": datetime.now(UTC)})
        try:
            result = await self.connection.execute(
                CatalogQueries.UPDATE_MOVIE,
                (
                    updated.name,
                    updated.description,
                    updated.duration,
                    updated.image_url,
                    str(updated.classification),
                    updated.category_id,
                    updated.created_at.isoformat(),
                    updated.id,
                ),
            )
            await self.connection.commit()
        except aiosqlite.IntegrityError as e:
            raise _integrity_error(e, movie.name) from e

        return updated if result.rowcount else None

    async def delete_movie(self, movie_id: int) -> bool:
        """Delete a movie.

        :return: True if a movie was deleted
        """
        result = await self.connection.execute(
            CatalogQueries.DELETE_MOVIE,
            (movie_id,),
        )
        await self.connection.commit()
        return bool(result.rowcount)
