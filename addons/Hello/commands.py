import discord

from tomte.api import Command, CommandSpec, InteractionHandler


async def hello(interaction, client):
    view = discord.ui.View()
    view.add_item(discord.ui.Button(label="Wave back", custom_id="hello:wave"))
    await interaction.response.send_message("Hello!", view=view)


async def wave(interaction, client):
    await interaction.response.send_message("👋", ephemeral=True)
    return True


COMMAND = Command(
    data=CommandSpec(name="hello", description="Say hello"),
    execute=hello,
    interactions=[InteractionHandler("button", "hello:wave", wave)],
)
