import argparse
import asyncio
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from artifact_generators.cask_recipe_gen import write_catalog_cask_recipes
from artifact_generators.catalog_csv_gen import write_catalog_to_csv
from artifact_generators.catalog_gen import read_catalog, write_catalog, write_fairseal
from catalog_builder.cask_merger import build_app_casks
from catalog_builder.catalog_assembler import build_app_catalog
from catalog_builder.catalog_differ import (
    NewsFormat,
    import_version_dates,
    new_releases,
    post_updates,
    update_version_dates,
)
from catalog_builder.homebrew_client import HomebrewClient
from configuration import Configuration
from fairhub.errors import FairError
from fairhub.fair_hub import FairHub
from fairseal.build_comparator import codesign_stripper
from fairseal.seal_builder import build_fairseal, download_artifact
from project_policy.org_validation import validate_app_name_form
from project_policy.project_configuration import ProjectConfiguration
from timer import Timer
from loggers.main_logger import main_logger as logger

p = Path(__file__).resolve()


def run_catalog(config: Configuration, args: argparse.Namespace) -> int:
    hub = FairHub(config)
    project = ProjectConfiguration.from_configuration(config)
    catalog = asyncio.run(build_app_catalog(
        hub,
        project,
        base_repository=args.base_repo,
        source_url=args.source_url,
        include_funding=args.funding,
    ))
    out = write_catalog(catalog, args.output)
    logger.info(f"Wrote catalog with {len(catalog.apps)} apps to: {out}")
    if args.csv:
        logger.info(f"Wrote CSV to: {write_catalog_to_csv(catalog, args.csv)}")
    if args.casks_dir:
        write_catalog_cask_recipes(catalog, args.casks_dir, args.prerelease_suffix)
    hub.service.pool.log_token_stats()
    return 0


def run_casks(config: Configuration, args: argparse.Namespace) -> int:
    hub = FairHub(config)
    homebrew = None
    if not args.no_homebrew and config.homebrew_api:
        homebrew = HomebrewClient(config.homebrew_api, timeout=config.request_timeout)
    catalog = asyncio.run(build_app_casks(hub, homebrew))
    out = write_catalog(catalog, args.output)
    logger.info(f"Wrote {len(catalog.apps)} app casks to: {out}")
    if args.casks_dir:
        write_catalog_cask_recipes(catalog, args.casks_dir, args.prerelease_suffix)
    hub.service.pool.log_token_stats()
    return 0


def run_postrelease(config: Configuration, args: argparse.Namespace) -> int:
    source = read_catalog(args.source)
    catalog = read_catalog(args.catalog)
    catalog.news = source.news

    if args.update_dates:
        import_version_dates(catalog, source)

    diffs = new_releases(source, catalog)
    news_format = NewsFormat(
        post_title=args.post_title,
        post_title_update=args.post_title_update,
        post_caption=args.post_caption,
        post_caption_update=args.post_caption_update,
    )
    now = datetime.now(timezone.utc)
    post_updates(catalog, diffs, news_format, args.news_limit or config.news_limit, now)

    if args.update_dates:
        update_version_dates(catalog, diffs, now)

    out = write_catalog(catalog, args.output or args.catalog)
    logger.info(f"Wrote {len(diffs)} release changes to: {out}")
    return 0


def run_fairseal(config: Configuration, args: argparse.Namespace) -> int:
    strip = codesign_stripper() if args.strip_signature else None

    with tempfile.TemporaryDirectory(prefix="fairseal_") as tmp:
        untrusted = Path(args.untrusted) if args.untrusted else download_artifact(args.artifact_url, tmp)
        seal = build_fairseal(
            config,
            args.trusted,
            untrusted,
            args.artifact_url,
            staging_dirs=args.staging or [],
            entitlements=args.entitlements,
            metadata=args.metadata,
            strip_signature=strip,
        )

    if args.output:
        logger.info(f"Wrote fairseal to: {write_fairseal(seal, args.output)}")

    if args.post:
        hub = FairHub(config)
        url = asyncio.run(hub.post_fairseal(seal, args.base_repo))
        if url is None:
            logger.warning("unable to post fairseal")
        else:
            logger.info(f"posted fairseal to: {url}")
    return 0


def run_validate(config: Configuration, args: argparse.Namespace) -> int:
    validate_app_name_form(args.owner)
    project = ProjectConfiguration.from_configuration(config)
    hub = FairHub(config)
    asyncio.run(hub.validate_repository(args.owner, args.name or config.base_repository, project))
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Build and verify fairground app catalogs.")
    ap.add_argument("--env-file", default=None, help="Optional .env file to load before reading the environment.")
    sub = ap.add_subparsers(dest="command", required=True)

    catalog = sub.add_parser("catalog", help="Build the verified app catalog from the base repository's forks.")
    catalog.add_argument("--output", default=str(Path(Configuration.output_dir, Configuration.catalog_file_name)))
    catalog.add_argument("--csv", default=None, help="Optional path to also write the catalog as CSV.")
    catalog.add_argument("--base-repo", default=None)
    catalog.add_argument("--source-url", default=None)
    catalog.add_argument("--funding", action="store_true", help="Include the fairground's funding sources.")
    catalog.add_argument("--casks-dir", default=None, help="Optional folder to write Homebrew cask recipes into.")
    catalog.add_argument("--prerelease-suffix", default=None)
    catalog.set_defaults(func=run_catalog)

    casks = sub.add_parser("casks", help="Build the app casks catalog.")
    casks.add_argument("--output", default=str(Path(Configuration.output_dir, Configuration.casks_catalog_file_name)))
    casks.add_argument("--casks-dir", default=None, help="Optional folder to write Homebrew cask recipes into.")
    casks.add_argument("--prerelease-suffix", default=None)
    casks.add_argument("--no-homebrew", action="store_true", help="Skip the Homebrew cask list and install stats.")
    casks.set_defaults(func=run_casks)

    post = sub.add_parser("postrelease", help="Post news for releases that changed between two catalogs.")
    post.add_argument("--source", required=True, help="The previously published catalog.")
    post.add_argument("--catalog", required=True, help="The newly built catalog.")
    post.add_argument("--output", default=None, help="Defaults to overwriting --catalog.")
    post.add_argument("--update-dates", action="store_true")
    post.add_argument("--news-limit", type=int, default=None)
    post.add_argument("--post-title", default=None)
    post.add_argument("--post-title-update", default=None)
    post.add_argument("--post-caption", default=None)
    post.add_argument("--post-caption-update", default=None)
    post.set_defaults(func=run_postrelease)

    seal = sub.add_parser("fairseal", help="Compare a trusted build with a published artifact and seal it.")
    seal.add_argument("--trusted", required=True, help="The locally built artifact.")
    seal.add_argument("--untrusted", default=None, help="The published artifact; downloaded when omitted.")
    seal.add_argument("--artifact-url", required=True)
    seal.add_argument("--staging", action="append", help="Folder of release assets to hash (repeatable).")
    seal.add_argument("--entitlements", default=None)
    seal.add_argument("--metadata", default=None)
    seal.add_argument("--output", default=str(Path(Configuration.output_dir, Configuration.fairseal_file_name)))
    seal.add_argument("--post", action="store_true", help="Post the fairseal to the app's open pull request.")
    seal.add_argument("--base-repo", default=None)
    seal.add_argument("--strip-signature", action="store_true", help="Strip code signatures with codesign.")
    seal.set_defaults(func=run_fairseal)

    validate = sub.add_parser("validate", help="Validate an app organization against the project policy.")
    validate.add_argument("--owner", required=True)
    validate.add_argument("--name", default=None)
    validate.set_defaults(func=run_validate)

    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    timer = Timer(logger)
    timer.start(f"starting {args.command} timer")
    try:
        config = Configuration.from_env(Path(args.env_file) if args.env_file else None)
        return args.func(config, args)
    except FairError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    finally:
        timer.stop(f"stopping {args.command} timer")
        logger.info(timer.elapsed(f"Elapsed time for {args.command}: "))


if __name__ == "__main__":
    sys.exit(main())
