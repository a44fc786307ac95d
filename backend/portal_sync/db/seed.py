# portal_sync/db/seed.py

"""
Sample data

Two illustrative processes, created when no saved state can be loaded.
"""

from typing import List, TYPE_CHECKING

from portal_sync.core.logger import logger

if TYPE_CHECKING:
    from portal_sync.services.process_service import ProcessRegistry

# ============================================================================
# Seed Data
# ============================================================================

SAMPLE_PROCESSES = [
    {
        "type": "Ação Penal",
        "plaintiff": "Ministério Público",
        "defendant": "João Silva Santos",
        "urgency": "alta",
        "description": "Ação penal por tráfico de drogas",
    },
    {
        "type": "Ação Civil",
        "plaintiff": "Maria Santos",
        "defendant": "Empresa XYZ Ltda",
        "urgency": "media",
        "description": "Ação de indenização por danos morais",
    },
]


def seed_sample_processes(processes: "ProcessRegistry") -> List[str]:
    """Create the sample processes and return their ids"""
    logger.info("Seeding %d sample processes", len(SAMPLE_PROCESSES))
    return [processes.create(data) for data in SAMPLE_PROCESSES]
