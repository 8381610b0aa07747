"""
CLI interface for Mise-En-Plaice: combine recipes into a meal prep guide from
the terminal.
"""
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Sequence

import click
from pydantic import ValidationError

from mealprep.clients.openai_client import OpenAIClient
from mealprep.config import Settings, get_settings
from mealprep.engine.factory import Components, build_components
from mealprep.engine.orchestrator import SessionState
from mealprep.errors import MealPrepError
from mealprep.features.flags import FeatureFlags, get_feature_flags
from mealprep.models.schemas import (
    ConsolidatedIngredient,
    ConsolidateRequest,
    RecipeKind,
    RecipeSource,
    StreamEvent,
)
from mealprep.services.guide_service import GuideSaver


class MealPrepCLI:
    """CLI application state: settings, flags and component wiring."""

    def __init__(self, settings: Settings, flags: FeatureFlags):
        self.settings = settings
        self.flags = flags

    def build_components(self) -> Components:
        # Built inside the running event loop so the HTTP pools belong to it
        client = OpenAIClient.from_settings(self.settings)
        return build_components(self.settings, self.flags, client)

    @property
    def saver(self) -> GuideSaver:
        return GuideSaver(self.settings.saved_guides_dir)


def _fail(message: str) -> None:
    click.echo(f"❌ {message}", err=True)
    sys.exit(1)


def _echo_event(event: StreamEvent) -> None:
    if event.type == "metadata":
        click.echo(f"\n📖 Combining {len(event.recipes)} recipes:")
        for index, recipe in enumerate(event.recipes):
            click.echo(f"  {index + 1}. {recipe.title} ({len(recipe.ingredients)} ingredients)")
        click.echo("=" * 60)
    elif event.type == "chunk":
        click.echo(event.chunk, nl=False)
    elif event.type == "done":
        click.echo("\n" + "=" * 60)
        if event.saved_filename:
            click.echo(f"💾 Guide saved to: {event.saved_filename}")
    elif event.type == "error":
        click.echo("")
        click.echo(f"❌ {event.error}", err=True)


def _echo_shopping_list(ingredients: Sequence[ConsolidatedIngredient]) -> None:
    if not ingredients:
        return
    click.echo(f"\n🛒 SHOPPING LIST ({len(ingredients)} items)")
    click.echo("-" * 60)
    for item in ingredients:
        click.echo(f"  • {item.ingredient}  ({', '.join(item.recipes)})")


async def _run_combine(app: MealPrepCLI, sources: List[RecipeSource], stream: bool):
    components = app.build_components()
    orchestrator = components.orchestrator
    try:
        if stream:
            session = await orchestrator.open_session(sources)
            async for event in orchestrator.stream(session):
                _echo_event(event)
        else:
            session = await orchestrator.combine(sources)
            click.echo(session.guide_text)
            if session.saved_filename:
                click.echo(f"\n💾 Guide saved to: {session.saved_filename}")
        return session, await session.wait_for_consolidation()
    finally:
        await components.client.close()


@click.group()
@click.pass_context
def cli(ctx):
    """Mise-En-Plaice - combine recipes into one meal prep guide"""
    ctx.obj = MealPrepCLI(get_settings(), get_feature_flags())


@cli.command()
@click.option('--url', 'urls', multiple=True, help='Recipe page URL (repeatable)')
@click.option('--text', 'texts', multiple=True, help='Pasted recipe text (repeatable)')
@click.option(
    '--text-file', 'text_files', multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='File containing recipe text (repeatable)',
)
@click.option('--no-stream', is_flag=True, help='Wait for the whole guide instead of streaming it')
@click.pass_obj
def combine(app: MealPrepCLI, urls, texts, text_files, no_stream: bool):
    """Combine recipes into a single meal prep guide."""
    sources = [RecipeSource(kind=RecipeKind.URL, content=url) for url in urls]
    sources += [RecipeSource(kind=RecipeKind.TEXT, content=text) for text in texts]
    sources += [
        RecipeSource(kind=RecipeKind.TEXT, content=path.read_text(encoding="utf-8"))
        for path in text_files
    ]
    if not sources:
        _fail("Provide at least one recipe with --url, --text or --text-file")

    click.echo(f"\n🍽️  Parsing {len(sources)} recipes...")
    try:
        session, shopping_list = asyncio.run(
            _run_combine(app, sources, stream=not no_stream)
        )
    except MealPrepError as e:
        _fail(e.message)
    if session.state == SessionState.FAILED:
        sys.exit(1)
    _echo_shopping_list(shopping_list)


@cli.command()
@click.argument('recipes_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def consolidate(app: MealPrepCLI, recipes_file: Path):
    """
    Consolidate ingredients from a JSON file of recipes.

    The file holds either a list of {title, ingredients} objects or an
    object with a "recipes" key.
    """
    try:
        data = json.loads(recipes_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        _fail(f"Invalid JSON in {recipes_file}: {e}")
    if isinstance(data, list):
        data = {"recipes": data}

    try:
        request = ConsolidateRequest.model_validate(data)
    except ValidationError as e:
        _fail(f"Invalid recipes file: {e.error_count()} validation errors")
    if not request.recipes:
        _fail("Please provide at least one recipe with ingredients")

    async def run():
        components = app.build_components()
        try:
            return await components.consolidator.consolidate(request.recipes)
        finally:
            await components.client.close()

    _echo_shopping_list(asyncio.run(run()))


@cli.group()
def guides():
    """Browse saved meal prep guides."""


@guides.command('list')
@click.pass_obj
def list_guides(app: MealPrepCLI):
    """List saved guides, newest first."""
    saved = app.saver.list_guides()
    if not saved:
        click.echo("No saved guides yet.")
        return
    click.echo(f"\n📚 SAVED GUIDES ({len(saved)})")
    click.echo("-" * 60)
    for guide in saved:
        click.echo(
            f"  {guide.filename:45} {guide.created_at:%Y-%m-%d %H:%M}  {guide.size:>7} bytes"
        )


@guides.command('show')
@click.argument('filename')
@click.pass_obj
def show_guide(app: MealPrepCLI, filename: str):
    """Print a saved guide."""
    try:
        click.echo(app.saver.read_guide(filename))
    except MealPrepError as e:
        _fail(e.message)


if __name__ == '__main__':
    cli()
