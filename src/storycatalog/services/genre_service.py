"""Genre catalog service and slug derivation."""

import logging
import re
import unicodedata
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from storycatalog.domain.errors import GenreNotFoundError, InvalidInputError
from storycatalog.infrastructure.models import GenreModel
from storycatalog.repositories.story_repo import GenreRepository

logger = logging.getLogger(__name__)

# Letters NFKD does not decompose into ASCII
_TRANSLITERATIONS = str.maketrans({"đ": "d", "Đ": "D", "ß": "ss", "ø": "o", "Ø": "O"})


def normalize_slug(name: str) -> str:
    """Convert a genre name to a URL-safe slug.

    Accents are folded to ASCII, everything else that is not a letter or
    digit becomes a single hyphen.
    """
    slug = name.translate(_TRANSLITERATIONS)
    slug = unicodedata.normalize("NFKD", slug).encode("ascii", "ignore").decode("ascii")
    slug = slug.lower().strip()
    slug = re.sub(r"[^a-z0-9]+", "-", slug)
    slug = slug.strip("-")
    return slug


def _clean_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise InvalidInputError("Genre name must not be blank")
    return name


class GenreService:
    """Service for genre CRUD."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize genre service."""
        self.session = session
        self.genre_repo = GenreRepository(session)

    async def list_genres(self) -> list[GenreModel]:
        return await self.genre_repo.get_all()

    async def get_genre(self, genre_id: uuid.UUID) -> GenreModel:
        genre = await self.genre_repo.get_by_id(genre_id)
        if genre is None:
            raise GenreNotFoundError(genre_id)
        return genre

    async def create_genre(self, name: str, description: str | None = None) -> GenreModel:
        """Create a genre; the slug is derived from the name."""
        name = _clean_name(name)
        genre = await self.genre_repo.create(
            name=name, slug=normalize_slug(name), description=description
        )
        logger.info(f"Created genre: {name} ({genre.slug})")
        return genre

    async def update_genre(
        self,
        genre_id: uuid.UUID,
        name: str,
        description: str | None = None,
    ) -> GenreModel:
        """Rename a genre. A None description keeps the current one."""
        genre = await self.get_genre(genre_id)
        name = _clean_name(name)

        genre.name = name
        genre.slug = normalize_slug(name)
        if description is not None:
            genre.description = description

        await self.session.flush()
        return genre

    async def delete_genre(self, genre_id: uuid.UUID) -> None:
        """Delete a genre; stories lose the tag but are otherwise untouched."""
        if not await self.genre_repo.delete(genre_id):
            raise GenreNotFoundError(genre_id)
        logger.info(f"Deleted genre {genre_id}")
