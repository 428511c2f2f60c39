"""
Weekly race and role management service.
Handles weekly resets, leaderboard entries and Discord role assignments.
"""
import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

import discord

import config
from models.diagnostic import ValidationDiagnostic, has_errors
from models.weekly import Weekly
from services import storage
from services.options_codec import FormatError
from services.race_factory import RaceFactory
from services.weekly_utils import get_week_number, random_seed

logger = logging.getLogger(__name__)

# !spoiler flags and the role change each one requests
SPOILER_FLAGS = {
    '--done': 'done',
    '--completed': 'done',
    '--forfeit': 'forfeit',
    '--revoke': 'revoke',
}


def parse_spoiler_args(args: Sequence[str]) -> List[Tuple[str, str]]:
    """
    Parse '--flag member' pairs of the spoiler command.

    Returns:
        (action, member) pairs in the given order, action being 'done',
        'forfeit' or 'revoke'

    Raises:
        ValueError: On an unknown flag or a flag without a member
    """
    changes = []
    for i in range(0, len(args), 2):
        flag = args[i]
        if flag not in SPOILER_FLAGS or i + 1 >= len(args):
            raise ValueError(f"Unrecognized option '{flag}'")
        changes.append((SPOILER_FLAGS[flag], args[i + 1]))
    return changes


class WeeklyManager:
    """Manages the weekly race, its leaderboard and the weekly roles."""

    def __init__(self, weekly: Weekly, race_factory: RaceFactory):
        self.weekly = weekly
        self.race_factory = race_factory

    async def get_or_create_role(self, guild: discord.Guild, name: str) -> Optional[discord.Role]:
        """Get a role by name, creating it if it doesn't exist."""
        role = discord.utils.get(guild.roles, name=name)

        if not role:
            try:
                role = await guild.create_role(
                    name=name,
                    reason="Auto-created by MaraBot"
                )
                logger.info(f'Created role: {name}')
            except discord.Forbidden:
                logger.error(f'Bot lacks permission to create role "{name}"')
                return None

        return role

    async def grant_role(self, guild: discord.Guild, member: discord.Member, name: str) -> bool:
        """Give a member a weekly role. Returns False if that wasn't possible."""
        role = await self.get_or_create_role(guild, name)
        if not role:
            return False

        try:
            await member.add_roles(role, reason="Weekly race")
            return True
        except discord.Forbidden:
            logger.error(f'Bot lacks permission to grant role "{name}"')
            return False

    async def revoke_roles(self, guild: discord.Guild, names: Iterable[str]) -> None:
        """Remove roles from every member that has them."""
        for name in names:
            role = discord.utils.get(guild.roles, name=name)
            if not role:
                continue

            for member in list(role.members):
                try:
                    await member.remove_roles(role, reason="Weekly reset")
                except discord.Forbidden:
                    logger.error(f'Bot lacks permission to remove role "{name}"')
                    return
            logger.info(f'Revoked role "{name}" in {guild.name}')

    async def revoke_member_roles(self, guild: discord.Guild, member: discord.Member, names: Iterable[str]) -> bool:
        """Remove weekly roles from one member. Returns False if that wasn't possible."""
        roles = [role for role in (discord.utils.get(guild.roles, name=name) for name in names) if role]
        if not roles:
            return True

        try:
            await member.remove_roles(*roles, reason="Weekly roles revoked")
            return True
        except discord.Forbidden:
            logger.error(f'Bot lacks permission to remove roles from {member.display_name}')
            return False

    def needs_reset(self, now: Optional[datetime] = None) -> bool:
        """Check if the stored weekly belongs to an earlier week."""
        return self.weekly.week_number != get_week_number(now)

    def roll_weekly(
        self,
        week_number: int,
        rng: Optional[random.Random] = None,
        now: Optional[datetime] = None
    ) -> Tuple[Weekly, List[ValidationDiagnostic]]:
        """
        Generate a new mystery weekly.

        Returns:
            The new weekly and the validation diagnostics of its preset
        """
        name = f"Weekly {week_number}"
        preset = self.race_factory.mystery_preset(name=name, author=config.BOT_AUTHOR, rng=rng)
        diagnostics = self.race_factory.validator.validate(preset.options)

        if has_errors(diagnostics):
            logger.warning(f'{name} mystery preset has validation errors:')
            for diagnostic in diagnostics:
                logger.warning(f'  {diagnostic.render()}')

        weekly = Weekly(
            week_number=week_number,
            preset_name=name,
            preset=preset,
            seed=random_seed(rng),
            timestamp=now or datetime.now(timezone.utc)
        )
        return weekly, diagnostics

    async def reset(
        self,
        guilds: Iterable[discord.Guild],
        now: Optional[datetime] = None,
        rng: Optional[random.Random] = None
    ) -> Weekly:
        """
        Back up the current weekly and replace it with a new one.

        Weekly roles are revoked in every guild before the new race is rolled.
        """
        now = now or datetime.now(timezone.utc)
        previous_week = self.weekly.week_number
        current_week = get_week_number(now)

        for guild in guilds:
            await self.revoke_roles(guild, (config.WEEKLY_COMPLETED_ROLE, config.WEEKLY_FORFEITED_ROLE))

        if self.weekly.is_valid:
            storage.store_weekly(self.weekly, f"weekly.{previous_week}.json")
            logger.info(f'Backed up weekly {previous_week}')

        # Stored first so a failed roll doesn't bring back last week's race
        self.weekly = Weekly.not_set(current_week, now)
        storage.store_weekly(self.weekly)

        try:
            weekly, _ = self.roll_weekly(current_week, rng=rng, now=now)
        except FormatError as e:
            logger.warning(f'Could not generate weekly {current_week}: {e}')
            return self.weekly

        self.weekly = weekly
        storage.store_weekly(self.weekly)
        logger.info(f'Weekly reset: week {previous_week} -> {current_week}, seed {self.weekly.seed}')
        return self.weekly

    def has_forfeited(self, username: str) -> bool:
        """Check if a player already gave up on this weekly."""
        return self.weekly.has_entry(username) and self.weekly.leaderboard[username] is None

    def record_completion(self, username: str, time: timedelta) -> None:
        """Add a player's time to the leaderboard and save it."""
        self.weekly.add_to_leaderboard(username, time)
        storage.store_weekly(self.weekly)
        logger.info(f'{username} completed weekly {self.weekly.week_number} in {time}')

    def record_forfeit(self, username: str) -> None:
        """Add a forfeit to the leaderboard and save it."""
        self.weekly.forfeit(username)
        storage.store_weekly(self.weekly)
        logger.info(f'{username} forfeited weekly {self.weekly.week_number}')
