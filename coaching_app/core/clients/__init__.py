"""
Client management logic.

Contains the client domain models, the in-memory repository, advisory
validation and the account service that links clients to sign-in
accounts and the document store.
"""

from .models import (
    Client,
    ClientStatistics,
    FitnessLevel,
    FitnessProfile,
    Membership,
    MembershipStatus,
    MembershipType,
    PersonalInfo,
    ProgressCategory,
    ProgressEntry,
    ProgressLog,
    WorkoutPlan,
)
from .repository import ClientRepository
from .validation import ValidationResult, validate_client_data
from .accounts import (
    AuthenticationError,
    ClientAccountService,
    Document,
    DocumentStore,
    DuplicateAccountError,
    IdentityError,
    IdentityProvider,
    RegisteredClient,
    RegistrationError,
)

__all__ = [
    "Client",
    "ClientStatistics",
    "FitnessLevel",
    "FitnessProfile",
    "Membership",
    "MembershipStatus",
    "MembershipType",
    "PersonalInfo",
    "ProgressCategory",
    "ProgressEntry",
    "ProgressLog",
    "WorkoutPlan",
    "ClientRepository",
    "ValidationResult",
    "validate_client_data",
    "AuthenticationError",
    "ClientAccountService",
    "Document",
    "DocumentStore",
    "DuplicateAccountError",
    "IdentityError",
    "IdentityProvider",
    "RegisteredClient",
    "RegistrationError",
]
