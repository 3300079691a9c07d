"""
Install State
Slot occupancy model and the reconciliation planner for Disable/Enable/Update

The planner never touches the filesystem. It reads a SlotOccupancy snapshot
plus the classification of the primary slot and returns a ReconciliationPlan
that PlanExecutor applies afterwards.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class Slot(Enum):
    PRIMARY_ACTIVE = 'primary-active'
    SECONDARY_ACTIVE = 'secondary-active'
    PRIMARY_DISABLED = 'primary-disabled'
    SECONDARY_DISABLED = 'secondary-disabled'


class Op(Enum):
    RENAME = 'rename'
    COPY = 'copy'
    DELETE = 'delete'
    EXTRACT = 'extract'


class Outcome(Enum):
    CHANGED = 'changed'
    NOTHING_TO_DO = 'nothing_to_do'
    UP_TO_DATE = 'up_to_date'
    PROTECTED = 'protected'
    NEEDS_UPDATE = 'needs_update'


@dataclass(frozen=True)
class SlotOccupancy:
    present: frozenset = frozenset()

    def __contains__(self, slot):
        return slot in self.present

    @property
    def active(self):
        return self.present & {Slot.PRIMARY_ACTIVE, Slot.SECONDARY_ACTIVE}


@dataclass(frozen=True)
class SlotLayout:
    """Where each slot of one add-on lives inside the game directory."""
    game_dir: Path
    paths: dict
    backup_path: Path = None

    @classmethod
    def for_addon(cls, game_dir, addon_config):
        game_dir = Path(game_dir)
        suffix = addon_config.disabled_suffix
        primary = game_dir / addon_config.primary_name
        paths = {
            Slot.PRIMARY_ACTIVE: primary,
            Slot.PRIMARY_DISABLED: primary.with_name(primary.name + suffix),
        }
        if addon_config.chainload_name:
            secondary = game_dir / addon_config.chainload_name
            paths[Slot.SECONDARY_ACTIVE] = secondary
            paths[Slot.SECONDARY_DISABLED] = secondary.with_name(secondary.name + suffix)

        backup = None
        if addon_config.backup_suffix:
            backup = primary.with_name(primary.name + addon_config.backup_suffix)
        return cls(game_dir=game_dir, paths=paths, backup_path=backup)

    @property
    def supports_chainload(self):
        return Slot.SECONDARY_ACTIVE in self.paths

    def path(self, slot):
        return self.paths[slot]

    def occupancy(self):
        """Snapshot which slots currently hold a file."""
        return SlotOccupancy(frozenset(slot for slot, path in self.paths.items() if path.is_file()))


@dataclass(frozen=True)
class Step:
    op: Op
    target: Path
    source: Path = None
    members: tuple = ()

    def describe(self):
        if self.op is Op.RENAME:
            return f'rename {self.source.name} -> {self.target.name}'
        if self.op is Op.COPY:
            return f'copy {self.source.name} -> {self.target.name}'
        if self.op is Op.DELETE:
            return f'delete {self.target.name}'
        return f'extract {", ".join(self.members)} from {self.source.name}'


@dataclass(frozen=True)
class ReconciliationPlan:
    outcome: Outcome
    steps: tuple = ()
    message: str = ''
    target: Slot = None


def _rename(layout, source, target):
    return Step(Op.RENAME, target=layout.path(target), source=layout.path(source))


def _delete(layout, slot):
    return Step(Op.DELETE, target=layout.path(slot))


def plan_disable(layout, occupancy, primary_match, name='add-on'):
    """Plan moving the live binary to its disabled filename.

    Args:
        layout: SlotLayout - Slot paths of the add-on
        occupancy: SlotOccupancy - Current slot snapshot
        primary_match: callable - Returns the ThirdPartyMatch of the primary
            slot; only called when that answer decides the plan
        name: str - Add-on display name for messages

    Returns:
        ReconciliationPlan
    """
    if Slot.SECONDARY_ACTIVE in occupancy:
        return ReconciliationPlan(
            Outcome.CHANGED,
            (_rename(layout, Slot.SECONDARY_ACTIVE, Slot.SECONDARY_DISABLED),),
            f'{name} disabled (chainloaded)',
            Slot.SECONDARY_DISABLED,
        )

    if Slot.PRIMARY_ACTIVE in occupancy:
        if primary_match().is_third_party:
            return ReconciliationPlan(
                Outcome.PROTECTED,
                message=(f'{layout.path(Slot.PRIMARY_ACTIVE).name} belongs to another add-on; '
                         f'leaving it alone. {name} not found'),
            )
        return ReconciliationPlan(
            Outcome.CHANGED,
            (_rename(layout, Slot.PRIMARY_ACTIVE, Slot.PRIMARY_DISABLED),),
            f'{name} disabled',
            Slot.PRIMARY_DISABLED,
        )

    return ReconciliationPlan(Outcome.NOTHING_TO_DO, message=f'{name} is not enabled; nothing to disable')


def plan_enable(layout, occupancy, primary_match, promote_to_chainload, name='add-on'):
    """Plan restoring a disabled binary to an active filename.

    A NEEDS_UPDATE plan means no disabled file exists and the caller should
    run a first-time install instead.

    Args:
        layout: SlotLayout - Slot paths of the add-on
        occupancy: SlotOccupancy - Current slot snapshot
        primary_match: callable - Returns the ThirdPartyMatch of the primary slot
        promote_to_chainload: bool - Move to the chainload slot when the
            primary slot holds the other add-on
        name: str - Add-on display name for messages

    Returns:
        ReconciliationPlan
    """
    if Slot.SECONDARY_DISABLED in occupancy:
        steps = []
        if Slot.SECONDARY_ACTIVE in occupancy:
            steps.append(_delete(layout, Slot.SECONDARY_ACTIVE))
        steps.append(_rename(layout, Slot.SECONDARY_DISABLED, Slot.SECONDARY_ACTIVE))
        return ReconciliationPlan(Outcome.CHANGED, tuple(steps), f'{name} enabled (chainloaded)', Slot.SECONDARY_ACTIVE)

    if Slot.PRIMARY_DISABLED in occupancy:
        if Slot.PRIMARY_ACTIVE in occupancy:
            if promote_to_chainload and layout.supports_chainload and primary_match().is_third_party:
                steps = []
                if Slot.SECONDARY_ACTIVE in occupancy:
                    steps.append(_delete(layout, Slot.SECONDARY_ACTIVE))
                steps.append(_rename(layout, Slot.PRIMARY_DISABLED, Slot.SECONDARY_ACTIVE))
                return ReconciliationPlan(
                    Outcome.CHANGED,
                    tuple(steps),
                    f'{name} enabled (chainloaded behind the add-on in {layout.path(Slot.PRIMARY_ACTIVE).name})',
                    Slot.SECONDARY_ACTIVE,
                )
            # Unidentified occupant is overwritten
            steps = (
                _delete(layout, Slot.PRIMARY_ACTIVE),
                _rename(layout, Slot.PRIMARY_DISABLED, Slot.PRIMARY_ACTIVE),
            )
            return ReconciliationPlan(Outcome.CHANGED, steps, f'{name} enabled', Slot.PRIMARY_ACTIVE)

        return ReconciliationPlan(
            Outcome.CHANGED,
            (_rename(layout, Slot.PRIMARY_DISABLED, Slot.PRIMARY_ACTIVE),),
            f'{name} enabled',
            Slot.PRIMARY_ACTIVE,
        )

    return ReconciliationPlan(Outcome.NEEDS_UPDATE, message=f'{name} is not installed; installing')


def choose_update_target(layout, occupancy, primary_match):
    """Pick the slot an updated payload is written to.

    Args:
        layout: SlotLayout - Slot paths of the add-on
        occupancy: SlotOccupancy - Current slot snapshot
        primary_match: callable - Returns the ThirdPartyMatch of the primary slot

    Returns:
        Slot - SECONDARY_ACTIVE when already chainloaded or when the primary
        slot holds the other add-on, else PRIMARY_ACTIVE
    """
    if not layout.supports_chainload:
        return Slot.PRIMARY_ACTIVE
    if Slot.SECONDARY_ACTIVE in occupancy:
        return Slot.SECONDARY_ACTIVE
    if Slot.PRIMARY_ACTIVE in occupancy and primary_match().is_third_party:
        return Slot.SECONDARY_ACTIVE
    return Slot.PRIMARY_ACTIVE


def plan_update(layout, occupancy, target, payload, payload_digest, occupant_digest,
                archive=None, companions=(), backup=False, name='add-on'):
    """Plan writing a resolved payload into its target slot.

    Args:
        layout: SlotLayout - Slot paths of the add-on
        occupancy: SlotOccupancy - Current slot snapshot
        target: Slot - Slot chosen by choose_update_target
        payload: Path - Resolved payload library on disk
        payload_digest: str - Digest of the payload
        occupant_digest: Optional str - Digest of the current target occupant
        archive: Optional Path - Archive holding companion files
        companions: tuple - Companion filenames extracted into the game directory
        backup: bool - Keep a copy of the replaced occupant at the backup path
        name: str - Add-on display name for messages

    Returns:
        ReconciliationPlan
    """
    extract = ()
    if archive is not None and companions:
        extract = (Step(Op.EXTRACT, target=layout.game_dir, source=Path(archive), members=tuple(companions)),)

    target_path = layout.path(target)
    if occupant_digest is not None and occupant_digest == payload_digest:
        return ReconciliationPlan(Outcome.UP_TO_DATE, extract, f'{name} is already up to date', target)

    steps = []
    if backup and layout.backup_path is not None and target in occupancy:
        steps.append(Step(Op.COPY, target=layout.backup_path, source=target_path))
    steps.append(Step(Op.COPY, target=target_path, source=Path(payload)))
    steps.extend(extract)

    where = ' (chainloaded)' if target is Slot.SECONDARY_ACTIVE else ''
    return ReconciliationPlan(Outcome.CHANGED, tuple(steps), f'{name} installed to {target_path.name}{where}', target)
