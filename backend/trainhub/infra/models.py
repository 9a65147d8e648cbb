"""Central registry for the SQLAlchemy models.

Importing this module loads every ORM class so ``Base.metadata`` is complete
before tables are created or migrations are autogenerated.
"""

from trainhub.domain.employees import db_models as employee_db_models  # noqa: F401
from trainhub.domain.programs import db_models as program_db_models  # noqa: F401
from trainhub.domain.progress import db_models as progress_db_models  # noqa: F401
