from .base_repository import BaseRepository
from .organization_repository import OrganizationRepository
from .person_repository import PersonRepository
from .assignment_repository import AssignmentRepository
from .store import EntityStore
