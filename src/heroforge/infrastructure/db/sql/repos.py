from typing import List, Optional, Sequence

from sqlalchemy import text

from heroforge.domain.models.character import CharacterRecord, NameIndices, SkinRef, Stance
from heroforge.domain.models.creation_request import PaymentMethod, PendingCreationRequest
from heroforge.domain.models.stats import ATTRIBUTE_NAMES, AttributeScores
from heroforge.domain.repositories import CharacterRepository, PendingRequestRepository
from .connection import SessionScope


_CHARACTER_COLUMNS: tuple[str, ...] = (
    "character_id",
    "owner",
    *ATTRIBUTE_NAMES,
    "name_set",
    "first_name_index",
    "surname_index",
    "skin_collection",
    "skin_token",
    "stance",
    "level",
    "current_xp",
    "weapon_specialization",
    "armor_specialization",
    "retired",
    "immortal",
    "created_at",
)

_PENDING_COLUMNS: tuple[str, ...] = (
    "request_id",
    "owner",
    "name_set",
    "fulfilled",
    "created_at",
    "payment_method",
    "fee_paid",
)


def _dialect(session) -> str:
    return session.bind.dialect.name if session.bind is not None else "sqlite"


def _upsert(session, table: str, key_columns: Sequence[str], columns: Sequence[str], params: dict) -> None:
    column_list = ", ".join(columns)
    value_list = ", ".join(f":{column}" for column in columns)
    updatable = [column for column in columns if column not in key_columns]
    if _dialect(session) == "mysql":
        updates = ",\n                ".join(f"{column} = VALUES({column})" for column in updatable)
        statement = f"""
            INSERT INTO {table} ({column_list})
            VALUES ({value_list})
            ON DUPLICATE KEY UPDATE
                {updates}
            """
    else:
        updates = ",\n                ".join(f"{column} = excluded.{column}" for column in updatable)
        statement = f"""
            INSERT INTO {table} ({column_list})
            VALUES ({value_list})
            ON CONFLICT({", ".join(key_columns)}) DO UPDATE SET
                {updates}
            """
    session.execute(text(statement), params)


def _row_to_record(row) -> CharacterRecord:
    return CharacterRecord(
        id=int(row.character_id),
        owner=str(row.owner),
        attributes=AttributeScores.from_sequence(getattr(row, name) for name in ATTRIBUTE_NAMES),
        name=NameIndices(
            name_set=bool(row.name_set),
            first_name_index=int(row.first_name_index),
            surname_index=int(row.surname_index),
        ),
        equipped_skin=SkinRef(collection_index=int(row.skin_collection), token_id=int(row.skin_token)),
        stance=Stance.normalize(row.stance),
        level=int(row.level),
        current_xp=int(row.current_xp),
        weapon_specialization=row.weapon_specialization,
        armor_specialization=row.armor_specialization,
        retired=bool(row.retired),
        immortal=bool(row.immortal),
        created_at=float(row.created_at or 0.0),
    )


def _record_params(record: CharacterRecord) -> dict:
    params = {
        "character_id": int(record.id),
        "owner": str(record.owner),
        "name_set": int(bool(record.name.name_set)),
        "first_name_index": int(record.name.first_name_index),
        "surname_index": int(record.name.surname_index),
        "skin_collection": int(record.equipped_skin.collection_index),
        "skin_token": int(record.equipped_skin.token_id),
        "stance": record.stance.value,
        "level": int(record.level),
        "current_xp": int(record.current_xp),
        "weapon_specialization": record.weapon_specialization,
        "armor_specialization": record.armor_specialization,
        "retired": int(bool(record.retired)),
        "immortal": int(bool(record.immortal)),
        "created_at": float(record.created_at),
    }
    params.update(record.attributes.as_dict())
    return params


def _row_to_request(row) -> PendingCreationRequest:
    return PendingCreationRequest(
        request_id=str(row.request_id),
        owner=str(row.owner),
        name_set=bool(row.name_set),
        created_at=float(row.created_at),
        payment_method=PaymentMethod(str(row.payment_method)),
        fee_paid=int(row.fee_paid),
        fulfilled=bool(row.fulfilled),
    )


class SqlCharacterRepository(CharacterRepository):
    _SEQUENCE_NAME = "characters"

    def __init__(self, scope: SessionScope) -> None:
        self._scope = scope

    def get(self, character_id: int) -> Optional[CharacterRecord]:
        with self._scope.session() as session:
            row = session.execute(
                text(f"SELECT {', '.join(_CHARACTER_COLUMNS)} FROM characters WHERE character_id = :cid"),
                {"cid": int(character_id)},
            ).first()
            return _row_to_record(row) if row else None

    def list_all(self) -> List[CharacterRecord]:
        with self._scope.session() as session:
            rows = session.execute(
                text(f"SELECT {', '.join(_CHARACTER_COLUMNS)} FROM characters ORDER BY character_id")
            ).all()
            return [_row_to_record(row) for row in rows]

    def list_by_owner(self, owner: str) -> List[CharacterRecord]:
        with self._scope.session() as session:
            rows = session.execute(
                text(
                    f"""
                    SELECT {', '.join(_CHARACTER_COLUMNS)}
                    FROM characters
                    WHERE owner = :owner
                    ORDER BY character_id
                    """
                ),
                {"owner": str(owner)},
            ).all()
            return [_row_to_record(row) for row in rows]

    def _next_character_id(self, session) -> int:
        row = session.execute(
            text("SELECT next_value FROM id_sequence WHERE name = :name"),
            {"name": self._SEQUENCE_NAME},
        ).first()
        if row is None:
            session.execute(
                text("INSERT INTO id_sequence (name, next_value) VALUES (:name, 2)"),
                {"name": self._SEQUENCE_NAME},
            )
            return 1
        allocated = int(row.next_value)
        session.execute(
            text("UPDATE id_sequence SET next_value = :next_value WHERE name = :name"),
            {"name": self._SEQUENCE_NAME, "next_value": allocated + 1},
        )
        return allocated

    def create(self, record: CharacterRecord) -> CharacterRecord:
        with self._scope.session() as session:
            new_id = self._next_character_id(session)
            created = CharacterRecord(
                id=new_id,
                owner=record.owner,
                attributes=record.attributes,
                name=record.name,
                equipped_skin=record.equipped_skin,
                stance=record.stance,
                level=record.level,
                current_xp=record.current_xp,
                weapon_specialization=record.weapon_specialization,
                armor_specialization=record.armor_specialization,
                retired=record.retired,
                immortal=record.immortal,
                created_at=record.created_at,
            )
            session.execute(
                text(
                    f"INSERT INTO characters ({', '.join(_CHARACTER_COLUMNS)}) "
                    f"VALUES ({', '.join(':' + column for column in _CHARACTER_COLUMNS)})"
                ),
                _record_params(created),
            )
            return created

    def save(self, record: CharacterRecord) -> None:
        if record.id is None:
            raise KeyError("Character has not been created")
        with self._scope.session() as session:
            assignments = ", ".join(f"{column} = :{column}" for column in _CHARACTER_COLUMNS[1:])
            result = session.execute(
                text(f"UPDATE characters SET {assignments} WHERE character_id = :character_id"),
                _record_params(record),
            )
            if result.rowcount == 0:
                raise KeyError(f"Character {record.id} has not been created")

    def get_attribute_points(self, character_id: int) -> int:
        with self._scope.session() as session:
            row = session.execute(
                text("SELECT points FROM attribute_points WHERE character_id = :cid"),
                {"cid": int(character_id)},
            ).first()
            return int(row.points) if row else 0

    def set_attribute_points(self, character_id: int, points: int) -> None:
        if int(points) < 0:
            raise ValueError("Attribute points cannot be negative")
        with self._scope.session() as session:
            _upsert(
                session,
                "attribute_points",
                ("character_id",),
                ("character_id", "points"),
                {"character_id": int(character_id), "points": int(points)},
            )

    def _account(self, session, owner: str):
        return session.execute(
            text("SELECT active_count, extra_slots FROM owner_accounts WHERE owner = :owner"),
            {"owner": str(owner)},
        ).first()

    def active_count(self, owner: str) -> int:
        with self._scope.session() as session:
            row = self._account(session, owner)
            return int(row.active_count) if row else 0

    def extra_slots(self, owner: str) -> int:
        with self._scope.session() as session:
            row = self._account(session, owner)
            return int(row.extra_slots) if row else 0

    def _write_account(self, owner: str, *, active_count: int | None = None, extra_slots: int | None = None) -> None:
        with self._scope.session() as session:
            row = self._account(session, owner)
            _upsert(
                session,
                "owner_accounts",
                ("owner",),
                ("owner", "active_count", "extra_slots"),
                {
                    "owner": str(owner),
                    "active_count": max(0, int(active_count if active_count is not None else (row.active_count if row else 0))),
                    "extra_slots": max(0, int(extra_slots if extra_slots is not None else (row.extra_slots if row else 0))),
                },
            )

    def set_active_count(self, owner: str, count: int) -> None:
        self._write_account(owner, active_count=count)

    def set_extra_slots(self, owner: str, count: int) -> None:
        self._write_account(owner, extra_slots=count)


class SqlPendingRequestRepository(PendingRequestRepository):
    def __init__(self, scope: SessionScope) -> None:
        self._scope = scope

    def get(self, request_id: str) -> Optional[PendingCreationRequest]:
        with self._scope.session() as session:
            row = session.execute(
                text(f"SELECT {', '.join(_PENDING_COLUMNS)} FROM pending_requests WHERE request_id = :rid"),
                {"rid": str(request_id)},
            ).first()
            return _row_to_request(row) if row else None

    def list_all(self) -> List[PendingCreationRequest]:
        with self._scope.session() as session:
            rows = session.execute(
                text(f"SELECT {', '.join(_PENDING_COLUMNS)} FROM pending_requests ORDER BY created_at")
            ).all()
            return [_row_to_request(row) for row in rows]

    def save(self, request: PendingCreationRequest) -> None:
        with self._scope.session() as session:
            _upsert(
                session,
                "pending_requests",
                ("request_id",),
                _PENDING_COLUMNS,
                {
                    "request_id": request.request_id,
                    "owner": request.owner,
                    "name_set": int(bool(request.name_set)),
                    "fulfilled": int(bool(request.fulfilled)),
                    "created_at": float(request.created_at),
                    "payment_method": request.payment_method.value,
                    "fee_paid": int(request.fee_paid),
                },
            )

    def delete(self, request_id: str) -> None:
        with self._scope.session() as session:
            session.execute(
                text("DELETE FROM pending_requests WHERE request_id = :rid"),
                {"rid": str(request_id)},
            )

    def pending_for_owner(self, owner: str) -> Optional[str]:
        with self._scope.session() as session:
            row = session.execute(
                text("SELECT request_id FROM owner_pending WHERE owner = :owner"),
                {"owner": str(owner)},
            ).first()
            return str(row.request_id) if row else None

    def set_owner_pending(self, owner: str, request_id: Optional[str]) -> None:
        with self._scope.session() as session:
            if request_id is None:
                session.execute(
                    text("DELETE FROM owner_pending WHERE owner = :owner"),
                    {"owner": str(owner)},
                )
                return
            _upsert(
                session,
                "owner_pending",
                ("owner",),
                ("owner", "request_id"),
                {"owner": str(owner), "request_id": str(request_id)},
            )
