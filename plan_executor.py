"""
Plan Executor
Validates and applies reconciliation plans to the game directory
"""

import os
import shutil
from pathlib import Path

from addon_errors import PlanError
from archive_tools import extract_members
from install_state import Op


class PlanExecutor:
    def __init__(self, log=print):
        self.log = log

    def validate(self, plan):
        """Dry-run a plan against the current filesystem.

        Every rename/copy source must exist, either on disk or produced by
        an earlier step, and every extract destination must be a directory.

        Raises:
            PlanError - On the first step that could not be applied
        """
        existing = set()
        removed = set()

        def exists(path):
            path = Path(path)
            if path in removed:
                return False
            return path in existing or path.is_file()

        for step in plan.steps:
            if step.op is Op.EXTRACT:
                if not Path(step.target).is_dir():
                    raise PlanError(f'Cannot {step.describe()}: {step.target} is not a directory')
                if not Path(step.source).is_file():
                    raise PlanError(f'Cannot {step.describe()}: archive is missing')
                continue

            if step.op in (Op.RENAME, Op.COPY):
                if not exists(step.source):
                    raise PlanError(f'Cannot {step.describe()}: {step.source} does not exist')
                if not Path(step.target).parent.is_dir():
                    raise PlanError(f'Cannot {step.describe()}: {step.target.parent} is not a directory')
                if step.op is Op.RENAME:
                    removed.add(Path(step.source))
                    existing.discard(Path(step.source))
                existing.add(Path(step.target))
                removed.discard(Path(step.target))
            elif step.op is Op.DELETE:
                removed.add(Path(step.target))
                existing.discard(Path(step.target))

    def execute(self, plan):
        """Validate, then apply every step of a plan in order.

        Returns:
            int - Number of steps applied
        """
        self.validate(plan)
        for step in plan.steps:
            if step.op is Op.RENAME:
                os.replace(step.source, step.target)
            elif step.op is Op.COPY:
                shutil.copy2(step.source, step.target)
            elif step.op is Op.DELETE:
                Path(step.target).unlink(missing_ok=True)
            elif step.op is Op.EXTRACT:
                written = extract_members(step.source, step.members, step.target)
                self.log(f'  extracted {len(written)} companion file(s) into {step.target}')
                continue
            self.log(f'  {step.describe()}')
        return len(plan.steps)
