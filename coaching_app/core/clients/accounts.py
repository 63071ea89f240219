"""
Client accounts on top of the repository.

The repository only knows about client records. A coaching business also
needs clients who can sign in, a document store the rest of the product
reads from, and workout plans assigned by the coach. This module ties
those together without knowing which identity provider or document store
is behind them; both are described as Protocols and injected.

Identity uids map 1:1 to client records: the client document is stored
under the uid and carries the repository's ``clientId``.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Protocol, Union

from .models import Client, ProgressCategory, ProgressEntry, WorkoutPlan
from .repository import ClientRepository
from .validation import validate_client_data

logger = logging.getLogger(__name__)

CLIENTS_COLLECTION = "clients"
PROGRESS_COLLECTION = "progress"
WORKOUT_PLANS_COLLECTION = "workoutPlans"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class IdentityError(Exception):
    """Raised when the identity provider refuses an operation."""
    pass


class AuthenticationError(IdentityError):
    """Raised when an email/password pair does not match an account."""
    pass


class DuplicateAccountError(IdentityError):
    """Raised when registering an email that already has an account."""
    pass


class RegistrationError(Exception):
    """Raised when client details fail validation at registration."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

@dataclass
class Document:
    """A keyed document as returned by a DocumentStore."""
    key: str
    data: dict[str, Any]


DocumentCallback = Callable[[list[Document]], None]


class Subscription(Protocol):
    def unsubscribe(self) -> None: ...


class IdentityProvider(Protocol):
    """
    Interface for the service that owns user credentials.

    Given an email and password it either hands back an opaque uid or
    raises an IdentityError subclass.
    """

    def create_user(self, email: str, password: str) -> str:
        """Create an account and return its uid."""
        ...

    def authenticate(self, email: str, password: str) -> str:
        """Verify credentials and return the account's uid."""
        ...


class DocumentStore(Protocol):
    """
    Interface for keyed document storage.

    Supports get-by-key, equality queries, ordered range listing and live
    subscriptions to a query's result set.
    """

    def get(self, collection: str, key: str) -> Optional[Document]: ...

    def set(self, collection: str, key: str, data: Mapping[str, Any]) -> Document: ...

    def add(self, collection: str, data: Mapping[str, Any]) -> Document: ...

    def delete(self, collection: str, key: str) -> bool: ...

    def where(self, collection: str, field: str, value: Any) -> list[Document]: ...

    def list_range(
        self,
        collection: str,
        order_by: str,
        descending: bool = False,
        limit: Optional[int] = None,
        start_after: Any = None,
    ) -> list[Document]: ...

    def subscribe(
        self,
        collection: str,
        callback: DocumentCallback,
        field: Optional[str] = None,
        value: Any = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> Subscription: ...


# ---------------------------------------------------------------------------
# Account Service
# ---------------------------------------------------------------------------

@dataclass
class RegisteredClient:
    """A newly registered client and the uid they sign in as."""
    uid: str
    client: Client


class ClientAccountService:
    """
    Registration, sign-in, progress feeds and workout plans.

    The repository stays the source of truth for client records; the
    document store holds the copies and side collections other parts of
    the product read and subscribe to.
    """

    def __init__(
        self,
        repository: ClientRepository,
        identity: IdentityProvider,
        store: DocumentStore,
    ) -> None:
        self._repository = repository
        self._identity = identity
        self._store = store

    def register(
        self,
        email: str,
        password: str,
        profile: Optional[Mapping[str, Any]] = None,
    ) -> RegisteredClient:
        """
        Create a sign-in account and a client record for it.

        Unlike plain repository creation, registration insists on a valid
        name and email, since the client will log in with them.
        """
        data = {**(profile or {}), "email": email}
        result = validate_client_data(data)
        if not result.is_valid:
            raise RegistrationError(result.errors)

        uid = self._identity.create_user(email, password)
        client = self._repository.create(data)
        self._store.set(CLIENTS_COLLECTION, uid, self._client_document(client))

        logger.info("Client registered", extra={"client_id": client.id, "uid": uid})
        return RegisteredClient(uid=uid, client=client)

    def sign_in(self, email: str, password: str) -> Optional[Client]:
        """
        Authenticate and load the client behind the account.

        Raises AuthenticationError for bad credentials; returns None if the
        account exists but its client record is gone or carries a
        different email.
        """
        uid = self._identity.authenticate(email, password)
        document = self._store.get(CLIENTS_COLLECTION, uid)
        if document is None:
            logger.warning("Account has no client document", extra={"uid": uid})
            return None

        client = self._repository.get_by_id(document.data["clientId"])
        if client is None or _email_key(client.personal_info.email) != _email_key(email):
            logger.warning(
                "Client document does not match the account",
                extra={"uid": uid, "client_id": document.data["clientId"]}
            )
            return None
        return client

    def client_key(self, client_id: int) -> Optional[str]:
        """The uid a client signs in as, if they have an account."""
        documents = self._store.where(CLIENTS_COLLECTION, "clientId", client_id)
        return documents[0].key if documents else None

    def sync_client(self, client_id: int) -> bool:
        """Copy the current client record into its document, if it has one."""
        client = self._repository.get_by_id(client_id)
        key = self.client_key(client_id)
        if client is None or key is None:
            return False
        self._store.set(CLIENTS_COLLECTION, key, self._client_document(client))
        return True

    def remove_client(self, client_id: int) -> bool:
        """Delete the client record with its document, progress feed and plans."""
        if not self._repository.delete(client_id):
            return False

        removed = 0
        for collection in (CLIENTS_COLLECTION, PROGRESS_COLLECTION, WORKOUT_PLANS_COLLECTION):
            for document in self._store.where(collection, "clientId", client_id):
                removed += self._store.delete(collection, document.key)

        logger.info("Client removed", extra={"client_id": client_id, "documents_removed": removed})
        return True

    def import_clients(self, serialized: str) -> bool:
        """
        Replace every client with a snapshot and re-link the documents.

        Snapshot ids need not match the ids the documents were written
        against, so documents follow their client by email. Client
        documents and plans whose client is not in the snapshot are
        dropped, and the progress feed is rebuilt from the imported
        histories. Returns False, with nothing changed, for an invalid
        snapshot.
        """
        previous = {
            client.id: _email_key(client.personal_info.email)
            for client in self._repository.list_clients()
        }
        if not self._repository.import_all(serialized):
            return False

        imported = self._repository.list_clients()
        by_email: dict[str, int] = {}
        for client in imported:
            email = _email_key(client.personal_info.email)
            if email:
                by_email.setdefault(email, client.id)
        moved = {old_id: by_email.get(email) for old_id, email in previous.items() if email}

        for collection in (CLIENTS_COLLECTION, WORKOUT_PLANS_COLLECTION):
            self._relink(collection, moved)
        self._rebuild_progress_feed(imported)

        logger.info("Client documents re-linked after import", extra={"client_count": len(imported)})
        return True

    # -----------------------------------------------------------------------
    # Progress feed
    # -----------------------------------------------------------------------

    def record_progress(
        self,
        client_id: int,
        category: Union[str, ProgressCategory],
        data: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """
        Add a progress entry and publish it to the progress feed.

        Same result convention as ClientRepository.add_progress.
        """
        if not self._repository.add_progress(client_id, category, data):
            return False

        resolved = ProgressCategory(category)
        entries = self._repository.get_progress(client_id, resolved)
        self._mirror_entry(client_id, resolved, entries[-1])
        self.sync_client(client_id)
        return True

    def watch_progress(self, client_id: int, callback: DocumentCallback) -> Subscription:
        """
        Subscribe to a client's progress feed, newest entries first.

        The callback fires right away with the current feed and again
        after every new entry.
        """
        return self._store.subscribe(
            PROGRESS_COLLECTION,
            callback,
            field="clientId",
            value=client_id,
            order_by="id",
            descending=True,
        )

    # -----------------------------------------------------------------------
    # Workout plans
    # -----------------------------------------------------------------------

    def assign_workout_plan(
        self,
        client_id: int,
        title: str,
        exercises: Optional[list[dict[str, Any]]] = None,
        notes: str = "",
    ) -> Optional[WorkoutPlan]:
        """Assign a plan to a client. None if the client does not exist."""
        if self._repository.get_by_id(client_id) is None:
            return None

        plan = WorkoutPlan(id="", client_id=client_id, title=title, exercises=exercises or [], notes=notes)
        document = self._store.add(WORKOUT_PLANS_COLLECTION, plan.to_dict())

        logger.info(
            "Workout plan assigned",
            extra={"client_id": client_id, "plan_id": document.key}
        )
        return WorkoutPlan.from_dict(document.key, document.data)

    def workout_plans(self, client_id: int) -> list[WorkoutPlan]:
        """Plans assigned to a client, oldest first."""
        documents = self._store.where(WORKOUT_PLANS_COLLECTION, "clientId", client_id)
        plans = [WorkoutPlan.from_dict(doc.key, doc.data) for doc in documents]
        return sorted(plans, key=lambda plan: plan.assigned_at)

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    @staticmethod
    def _client_document(client: Client) -> dict[str, Any]:
        return {**client.to_dict(), "clientId": client.id}

    def _mirror_entry(self, client_id: int, category: ProgressCategory, entry: ProgressEntry) -> None:
        self._store.add(PROGRESS_COLLECTION, {
            **entry.to_dict(),
            "clientId": client_id,
            "category": category.value,
        })

    def _relink(self, collection: str, moved: Mapping[int, Optional[int]]) -> None:
        for document in self._store.list_range(collection, order_by="clientId"):
            new_id = moved.get(document.data.get("clientId"))
            client = self._repository.get_by_id(new_id) if new_id is not None else None
            if client is None:
                self._store.delete(collection, document.key)
            elif collection == CLIENTS_COLLECTION:
                self._store.set(collection, document.key, self._client_document(client))
            elif new_id != document.data["clientId"]:
                self._store.set(collection, document.key, {**document.data, "clientId": new_id})

    def _rebuild_progress_feed(self, clients: list[Client]) -> None:
        for document in self._store.list_range(PROGRESS_COLLECTION, order_by="id"):
            self._store.delete(PROGRESS_COLLECTION, document.key)
        for client in clients:
            for category in ProgressCategory:
                for entry in client.progress.sequence(category):
                    self._mirror_entry(client.id, category, entry)


def _email_key(email: str) -> str:
    return email.strip().lower()
