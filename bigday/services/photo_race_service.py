"""
Photo mission race per table
"""

import logging
import random
from dataclasses import dataclass
from typing import Callable, List, Optional

from pydantic import ValidationError

from bigday.core.errors import NotFound, ValidationFailed
from bigday.schemas.config import MissionPhoto, PhotoRace, PhotoSubmission
from bigday.services.config_service import ConfigService
from bigday.services.kv_store import KeyValueStore
from bigday.services.storage_keys import PHOTO_RACES_KEY
from bigday.utils.tokens import utc_now_iso

logger = logging.getLogger(__name__)

MISSIONS_PER_RACE = 7
PHOTOS_TO_COMPLETE = 7


@dataclass(frozen=True)
class Mission:
    id: int
    title: str
    category: str  # emotions, characters, action, objects


MISSION_CATALOG = [
    Mission(1, "The greatest love in the room (besides the couple)", "emotions"),
    Mission(2, "The most sincere tear of joy", "emotions"),
    Mission(3, "Someone laughing out loud without noticing the camera", "emotions"),
    Mission(4, "The strongest hug of the day", "emotions"),
    Mission(5, "A gesture of pure relief", "emotions"),
    Mission(6, "The tallest and the shortest guest together", "characters"),
    Mission(7, "Selfie with the best man or maid of honour", "characters"),
    Mission(8, "The couple's oldest group of friends", "characters"),
    Mission(9, "Someone you did not know before today", "characters"),
    Mission(10, "The couple, but only their shadow or reflection", "characters"),
    Mission(11, "The best dance move of the night", "action"),
    Mission(12, "A conga line", "action"),
    Mission(13, "The best jump on the dance floor", "action"),
    Mission(14, "The rings or the bouquet in the air", "action"),
    Mission(15, "The person enjoying the food the most", "action"),
    Mission(16, "A decoration detail nobody else noticed", "objects"),
    Mission(17, "Ridiculously great socks or shoes", "objects"),
    Mission(18, "Someone refilling their drink", "objects"),
    Mission(19, "Something matching the groom's tie or the bouquet", "objects"),
    Mission(20, "A child playing happily", "objects"),
]


def draw_missions(rng: random.Random) -> List[int]:
    return sorted(rng.sample([m.id for m in MISSION_CATALOG], MISSIONS_PER_RACE))


class PhotoRaceService:
    def __init__(
        self,
        kv: KeyValueStore,
        config: ConfigService,
        clock: Callable[[], str] = utc_now_iso,
        rng: Optional[random.Random] = None,
    ):
        self.kv = kv
        self.config = config
        self.clock = clock
        self.rng = rng or random.SystemRandom()

    def list_races(self) -> List[PhotoRace]:
        raw = self.kv.get(PHOTO_RACES_KEY)
        races = []
        for item in raw if isinstance(raw, list) else []:
            try:
                races.append(PhotoRace.model_validate(item))
            except ValidationError:
                logger.warning(f"Skipping malformed photo race {item.get('tableId') if isinstance(item, dict) else item!r}")
        return races

    def replace_races(self, races: List[PhotoRace]) -> None:
        table_ids = [r.table_id for r in races]
        if len(table_ids) != len(set(table_ids)):
            raise ValidationFailed("One race per table")
        self.kv.set(PHOTO_RACES_KEY, [r.to_document() for r in races])

    def _find(self, races: List[PhotoRace], table_id: str) -> Optional[PhotoRace]:
        return next((r for r in races if r.table_id == table_id), None)

    def get_or_create_race(self, table_id: str) -> PhotoRace:
        races = self.list_races()
        race = self._find(races, table_id)
        if race is not None:
            return race

        self.config.get_table(table_id)
        race = PhotoRace(
            table_id=table_id,
            missions=draw_missions(self.rng),
            started_at=self.clock(),
        )
        races.append(race)
        self.replace_races(races)
        logger.info(f"Photo race started for table {table_id}")
        return race

    def add_photo(self, table_id: str, submission: PhotoSubmission) -> PhotoRace:
        race = self.get_or_create_race(table_id)
        if submission.mission_id not in race.missions:
            raise ValidationFailed("Mission is not part of this table's race")
        if any(p.id == submission.photo_id for p in race.photos):
            raise ValidationFailed("Photo already registered")

        race.photos.append(MissionPhoto(
            id=submission.photo_id,
            mission_id=submission.mission_id,
            url=submission.url,
            submitter_name=submission.submitter_name,
            uploaded_at=self.clock(),
        ))
        self._save(race)
        return race

    def set_photo_validated(self, table_id: str, photo_id: str, validated: bool = True) -> PhotoRace:
        races = self.list_races()
        race = self._find(races, table_id)
        if race is None:
            raise NotFound("Race not found")
        photo = next((p for p in race.photos if p.id == photo_id), None)
        if photo is None:
            raise NotFound("Photo not found")

        photo.validated = validated
        done = sum(1 for p in race.photos if p.validated) >= PHOTOS_TO_COMPLETE
        if done and not race.completed:
            race.completed_at = self.clock()
        elif not done:
            race.completed_at = None
        race.completed = done
        self._save(race, races)
        return race

    def _save(self, race: PhotoRace, races: Optional[List[PhotoRace]] = None) -> None:
        races = races if races is not None else self.list_races()
        merged = [race if r.table_id == race.table_id else r for r in races]
        if self._find(merged, race.table_id) is None:
            merged.append(race)
        self.replace_races(merged)
