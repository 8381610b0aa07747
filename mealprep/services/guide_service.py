"""
Guide persistence: saves generated meal prep guides as text files.

Each file holds a banner, the generation time, the list of recipes used and
the guide itself, so a guide can be reviewed later without the app.
"""
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Sequence

from mealprep.errors import GuideNotFoundError, InvalidInputError, PersistenceError
from mealprep.models.schemas import MANUAL_SOURCE, ParsedRecipe, SavedGuide

logger = logging.getLogger(__name__)

FILENAME_PREFIX = "meal-prep-guide-"
FILENAME_SUFFIX = ".txt"
RULE_WIDTH = 80

# Give up after this many suffixed names for one timestamp
MAX_NAME_ATTEMPTS = 100


def _banner(title: str) -> str:
    rule = "=" * RULE_WIDTH
    return f"{rule}\n{title}\n{rule}\n\n"


def render_guide_file(
    guide: str,
    recipes: Sequence[ParsedRecipe],
    generated_at: datetime,
) -> str:
    """Render the full text of a saved guide file."""
    stamp = generated_at.strftime("%Y-%m-%d %H:%M:%S %Z").strip()

    parts = [_banner("MEAL PREP GUIDE"), f"Generated: {stamp}\n\n"]
    parts.append("RECIPES INCLUDED:\n")
    parts.append("-" * RULE_WIDTH + "\n")
    for index, recipe in enumerate(recipes):
        parts.append(f"{index + 1}. {recipe.title}\n")
        if recipe.source and recipe.source != MANUAL_SOURCE:
            parts.append(f"   Source: {recipe.source}\n")
    parts.append("\n")

    parts.append(_banner("MEAL PREP GUIDE"))
    parts.append(guide)
    parts.append("\n\n")
    parts.append("=" * RULE_WIDTH + "\n")
    parts.append(f"End of guide - Saved: {stamp}\n")
    parts.append("=" * RULE_WIDTH + "\n")
    return "".join(parts)


def validate_filename(filename: str) -> str:
    """
    Reject names that could escape the guides directory.

    Raises:
        InvalidInputError: Not a bare ``.txt`` file name.
    """
    if (
        not filename
        or not filename.endswith(FILENAME_SUFFIX)
        or ".." in filename
        or "/" in filename
        or "\\" in filename
    ):
        raise InvalidInputError("Invalid filename", details={"filename": filename})
    return filename


class GuideSaver:
    """
    Stores guides in a single directory.

    The directory is created on first use. All methods are synchronous file
    operations; async callers run them in a worker thread.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _ensure_directory(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def save(self, guide: str, recipes: Sequence[ParsedRecipe]) -> str:
        """
        Write a guide to a new timestamped file.

        Args:
            guide: Full guide text.
            recipes: Recipes the guide was generated from.

        Returns:
            The file name (not the full path).

        Raises:
            PersistenceError: If the file cannot be written.
        """
        now = datetime.now(timezone.utc)
        content = render_guide_file(guide, recipes, now)
        base = f"{FILENAME_PREFIX}{now.strftime('%Y-%m-%dT%H-%M-%S')}"

        try:
            self._ensure_directory()
            for attempt in range(1, MAX_NAME_ATTEMPTS + 1):
                stem = base if attempt == 1 else f"{base}-{attempt}"
                filename = f"{stem}{FILENAME_SUFFIX}"
                path = self.directory / filename
                try:
                    # "x" refuses to overwrite a guide saved in the same second
                    with open(path, "x", encoding="utf-8") as f:
                        f.write(content)
                except FileExistsError:
                    continue
                logger.info(f"Meal prep guide saved to: {path}")
                return filename
        except OSError as e:
            logger.error(f"Error saving guide to file: {e}")
            raise PersistenceError(str(e), path=str(self.directory)) from e

        raise PersistenceError(
            f"no free file name for {base}{FILENAME_SUFFIX}",
            path=str(self.directory),
        )

    def list_guides(self) -> List[SavedGuide]:
        """List saved guides, newest first."""
        if not self.directory.is_dir():
            return []

        guides = []
        for path in self.directory.glob(f"*{FILENAME_SUFFIX}"):
            try:
                stat = path.stat()
            except OSError as e:
                logger.warning(f"Skipping unreadable guide {path.name}: {e}")
                continue
            guides.append(
                SavedGuide(
                    filename=path.name,
                    created_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                    size=stat.st_size,
                )
            )

        guides.sort(key=lambda g: (g.created_at, g.filename), reverse=True)
        return guides

    def read_guide(self, filename: str) -> str:
        """
        Read a saved guide.

        Raises:
            InvalidInputError: If the name is not a plain guide file name.
            GuideNotFoundError: If no such guide exists.
        """
        validate_filename(filename)
        path = self.directory / filename
        if not path.is_file():
            raise GuideNotFoundError(filename)
        return path.read_text(encoding="utf-8")
