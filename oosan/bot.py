from __future__ import annotations

import datetime
import logging
import os
import sqlite3
from dataclasses import replace

import discord
from discord import app_commands
from discord.ext import commands

from .pet import (
    DEAD,
    WEAK,
    PetState,
    display_opacity,
    display_size,
    react_to_touch,
    today_in,
)
from .pet_store import PetStore

logger = logging.getLogger(__name__)


SPRITE_URLS = {
    "healthy": "https://placehold.co/256x256/png?text=Oosan",
    "weak": "https://placehold.co/256x256/png?text=Oosan+(weak)",
    "dead": "https://placehold.co/256x256/png?text=River",
}

CONDITION_COLOURS = {
    "healthy": discord.Colour.teal(),
    "weak": discord.Colour.light_grey(),
    "dead": discord.Colour.dark_grey(),
}


def open_store(db_path: str) -> PetStore:
    try:
        return PetStore(db_path)
    except sqlite3.Error as exc:
        logger.warning("Cannot open %s (%s); keeping pets in memory", db_path, exc)
        return PetStore(":memory:")


def guild_key(guild_id: int) -> str:
    return f"guild:{guild_id}"


def build_embed(state: PetState) -> discord.Embed:
    if state.condition == DEAD:
        embed = discord.Embed(
            title="The river is quiet...",
            colour=CONDITION_COLOURS[DEAD],
        )
    else:
        embed = discord.Embed(
            title="Oosan the giant salamander",
            colour=CONDITION_COLOURS[state.condition],
        )
        embed.add_field(name="Condition", value=state.condition.title(), inline=True)
        embed.add_field(name="Size", value=f"{display_size(state):.1f} cm", inline=True)
        if state.condition == WEAK:
            embed.add_field(
                name="Visibility",
                value=f"{display_opacity(state):.0%}",
                inline=True,
            )
    embed.description = state.latest_log
    sprite_url = SPRITE_URLS.get(state.condition)
    if sprite_url:
        embed.set_thumbnail(url=sprite_url)
    embed.set_footer(
        text=f"Living here since {state.start_date.isoformat()} · "
        f"last visit {state.last_visit_date.isoformat()}"
    )
    return embed


class OosanBot(commands.Bot):
    def __init__(self) -> None:
        intents = discord.Intents.default()
        super().__init__(command_prefix="!", intents=intents)
        self.store = open_store(os.getenv("OOSAN_DB_PATH", "oosan_store.sqlite"))
        self.tz_name = os.getenv("OOSAN_TIMEZONE") or None

    def today(self) -> datetime.date:
        return today_in(self.tz_name)

    async def setup_hook(self) -> None:
        guild_id = os.getenv("GUILD_ID")
        if guild_id:
            guild = discord.Object(id=int(guild_id))
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
        else:
            await self.tree.sync()

    async def close(self) -> None:
        self.store.close()
        await super().close()


bot = OosanBot()


@bot.event
async def on_ready() -> None:
    if bot.user:
        logger.info("Logged in as %s (ID: %s)", bot.user, bot.user.id)


class SalamanderGroup(app_commands.Group):
    def __init__(self) -> None:
        super().__init__(name="salamander", description="Visit the river salamander")
        self.add_command(DevGroup())

    @app_commands.command(name="visit", description="Drop by the river")
    async def visit(self, interaction: discord.Interaction) -> None:
        if not interaction.guild:
            await interaction.response.send_message("The river only flows in servers.")
            return

        result = bot.store.activate(guild_key(interaction.guild.id), today=bot.today())
        await interaction.response.send_message(embed=build_embed(result.state))

    @app_commands.command(name="touch", description="Gently touch the salamander")
    async def touch(self, interaction: discord.Interaction) -> None:
        if not interaction.guild:
            await interaction.response.send_message("The river only flows in servers.")
            return

        state = bot.store.activate(guild_key(interaction.guild.id), today=bot.today()).state
        if state.condition == DEAD:
            await interaction.response.send_message("Only the water answers your touch.")
        elif react_to_touch(state):
            await interaction.response.send_message("Oosan wiggles a little!")
        else:
            await interaction.response.send_message("Oosan stays perfectly still.")

    @app_commands.command(name="status", description="Look at the salamander without visiting")
    async def status(self, interaction: discord.Interaction) -> None:
        if not interaction.guild:
            await interaction.response.send_message("The river only flows in servers.")
            return

        state = bot.store.load(guild_key(interaction.guild.id))
        if state is None:
            await interaction.response.send_message(
                "Nobody lives here yet. Use /salamander visit to find out."
            )
            return
        await interaction.response.send_message(embed=build_embed(state))


class DevGroup(app_commands.Group):
    def __init__(self) -> None:
        super().__init__(name="dev", description="Owner-only testing commands")

    async def _ensure_owner(self, interaction: discord.Interaction) -> bool:
        if not interaction.guild:
            await interaction.response.send_message(
                "Dev commands only work in servers.",
                ephemeral=True,
            )
            return False
        if interaction.user.id != interaction.guild.owner_id:
            await interaction.response.send_message(
                "Only the server owner can use dev commands.",
                ephemeral=True,
            )
            return False
        return True

    @app_commands.command(name="release", description="Release the salamander and start over")
    async def release(self, interaction: discord.Interaction) -> None:
        if not await self._ensure_owner(interaction):
            return
        removed = bot.store.delete(guild_key(interaction.guild.id))
        message = "The salamander swam away." if removed else "There was no salamander to release."
        await interaction.response.send_message(message, ephemeral=True)

    @app_commands.command(name="rewind", description="Pretend the last visit was days ago")
    @app_commands.describe(days="Number of days to move the last visit back (default 1)")
    async def rewind(
        self,
        interaction: discord.Interaction,
        days: app_commands.Range[int, 1, 3650] = 1,
    ) -> None:
        if not await self._ensure_owner(interaction):
            return
        key = guild_key(interaction.guild.id)
        state = bot.store.load(key)
        if state is None:
            await interaction.response.send_message(
                "There is no salamander to rewind.",
                ephemeral=True,
            )
            return
        shift = datetime.timedelta(days=days)
        state = replace(
            state,
            last_visit_date=state.last_visit_date - shift,
            last_growth_date=state.last_growth_date - shift,
        )
        bot.store.save(state, key)
        await interaction.response.send_message(
            f"Last visit is now {state.last_visit_date.isoformat()}.",
            ephemeral=True,
        )


bot.tree.add_command(SalamanderGroup())


def main() -> None:
    token = os.getenv("DISCORD_TOKEN")
    if not token:
        raise RuntimeError("DISCORD_TOKEN is not set")
    bot.run(token)


if __name__ == "__main__":
    main()
