"""Import every ORM module so that string relationships resolve.

Used by the Alembic environment, scripts and the test suite, which need the
full metadata without building the FastAPI app.
"""

import hrms.assignments.models  # noqa: F401
import hrms.attendance.models  # noqa: F401
import hrms.auth.models  # noqa: F401
import hrms.common.audit  # noqa: F401
import hrms.company.models  # noqa: F401
import hrms.core_hr.models  # noqa: F401
import hrms.countries.models  # noqa: F401
import hrms.eod_reports.models  # noqa: F401
import hrms.holidays.models  # noqa: F401
import hrms.leave.models  # noqa: F401
import hrms.menus.models  # noqa: F401
import hrms.notices.models  # noqa: F401
import hrms.performance.models  # noqa: F401
import hrms.payroll.models  # noqa: F401
import hrms.roles.models  # noqa: F401
import hrms.rosters.models  # noqa: F401
from hrms.database import Base

metadata = Base.metadata
