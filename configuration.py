import base64
import binascii
import os
from pathlib import Path
from typing import Dict, List, Optional

import utils
from fairhub.errors import InvalidFairsealKeyError

p = Path(__file__).resolve()


class Configuration:
    # DIRECTORIES
    root_dir = p.parent
    output_dir = Path(root_dir, "output")
    log_dir = Path(root_dir, "logs")

    # FILE NAMES
    env_file_name = ".env"
    catalog_file_name = "fairapps.json"
    casks_catalog_file_name = "appcasks.json"
    fairseal_file_name = "fairseal.json"

    # HUB DEFAULTS
    default_fair_hub = "github.com/appfair"
    default_base_repository = "App"
    default_casks_repository = "appcasks"
    privileged_casks_repository = "App-Fair/appcasks"
    catalog_root_url = "https://appfair.net"
    homebrew_api_url = "https://formulae.brew.sh/api/"
    homebrew_stats_path = "analytics/cask-install/homebrew-cask/"

    def __init__(
        self,
        fair_hub: str = default_fair_hub,
        hub_tokens: Optional[List[str]] = None,
        base_repository: str = default_base_repository,
        fairseal_issuer: Optional[str] = None,
        fairseal_key: Optional[bytes] = None,
        allow_name: Optional[List[str]] = None,
        deny_name: Optional[List[str]] = None,
        allow_from: Optional[List[str]] = None,
        deny_from: Optional[List[str]] = None,
        allow_license: Optional[List[str]] = None,
        artifact_extension: str = "zip",
        catalog_name: str = "App Fair",
        catalog_identifier: str = "net.appfair.catalog",
        interleave_delay: float = 1.0,
        phase_delay: float = 1.0,
        max_attempts: int = 10,
        request_timeout: int = 30,
        fork_count: int = 10,
        release_count: int = 10,
        asset_count: int = 40,
        pr_count: int = 10,
        comment_count: int = 10,
        casks_repository: str = default_casks_repository,
        starrer_name: Optional[str] = None,
        topic_name: Optional[str] = None,
        homebrew_api: Optional[str] = homebrew_api_url,
        stats_window: int = 30,
        boost_factor: int = 10000,
        boost_map: Optional[Dict[str, int]] = None,
        max_apps: Optional[int] = None,
        exclude_empty_casks: bool = True,
        permitted_diffs: Optional[int] = None,
        news_limit: int = 100,
        tint: Optional[str] = None,
    ) -> None:
        self.fair_hub = fair_hub
        self.hub_tokens = [t for t in (hub_tokens or []) if t]
        self.base_repository = base_repository
        self.fairseal_issuer = fairseal_issuer
        self.fairseal_key = fairseal_key

        # PROJECT POLICY PROPERTIES
        self.allow_name = allow_name or []
        self.deny_name = deny_name or []
        self.allow_from = allow_from or []
        self.deny_from = deny_from or []
        self.allow_license = allow_license or []

        # CATALOG PROPERTIES
        self.artifact_extension = artifact_extension
        self.catalog_name = catalog_name
        self.catalog_identifier = catalog_identifier
        self.news_limit = news_limit

        # ENDPOINT PROPERTIES
        self.interleave_delay = interleave_delay
        self.phase_delay = phase_delay
        self.max_attempts = max_attempts
        self.request_timeout = request_timeout
        self.fork_count = fork_count
        self.release_count = release_count
        self.asset_count = asset_count
        self.pr_count = pr_count
        self.comment_count = comment_count

        # CASK PROPERTIES
        self.casks_repository = casks_repository
        self.starrer_name = starrer_name
        self.topic_name = topic_name
        self.homebrew_api = homebrew_api
        self.stats_window = stats_window
        self.boost_factor = boost_factor
        self.boost_map = boost_map or {}
        self.max_apps = max_apps
        self.exclude_empty_casks = exclude_empty_casks

        # FAIRSEAL PROPERTIES
        self.permitted_diffs = permitted_diffs
        self.tint = tint

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "Configuration":
        """
        Build a Configuration from the process environment, after loading the
        project's .env file (values already present in the environment win).
        """
        utils.load_env_file(env_file or Path(cls.root_dir, cls.env_file_name))

        tokens = utils.read_newline_list("FAIR_HUB_TOKENS")
        single = os.getenv("GITHUB_TOKEN", "").strip()
        if single and single not in tokens:
            tokens.append(single)

        return cls(
            fair_hub=os.getenv("FAIR_HUB", cls.default_fair_hub),
            hub_tokens=tokens,
            base_repository=os.getenv("FAIR_BASE_REPOSITORY", cls.default_base_repository),
            fairseal_issuer=os.getenv("FAIRSEAL_ISSUER") or None,
            fairseal_key=decode_key(os.getenv("FAIRSEAL_KEY")),
            allow_name=utils.read_newline_list("FAIR_ALLOW_NAME"),
            deny_name=utils.read_newline_list("FAIR_DENY_NAME"),
            allow_from=utils.read_newline_list("FAIR_ALLOW_FROM"),
            deny_from=utils.read_newline_list("FAIR_DENY_FROM"),
            allow_license=utils.read_newline_list("FAIR_ALLOW_LICENSE"),
            artifact_extension=os.getenv("FAIR_ARTIFACT_EXTENSION", "zip"),
            interleave_delay=utils._coerce_float(os.getenv("FAIR_INTERLEAVE_DELAY"), 1.0),
            max_attempts=utils._coerce_int(os.getenv("FAIR_MAX_ATTEMPTS"), 10),
            starrer_name=os.getenv("FAIR_STARRER_NAME") or None,
            topic_name=os.getenv("FAIR_TOPIC_NAME") or None,
            max_apps=utils._coerce_int(os.getenv("FAIR_MAX_APPS"), 0) or None,
            permitted_diffs=utils._coerce_int(os.getenv("FAIRSEAL_PERMITTED_DIFFS"), 0) or None,
            tint=os.getenv("FAIR_TINT") or None,
        )


def decode_key(raw: Optional[str]) -> Optional[bytes]:
    """
    Decode the base64 fairseal signing key. Blank or absent means unsigned seals.
    """
    if raw is None or not raw.strip():
        return None
    try:
        return base64.b64decode(raw.strip(), validate=True)
    except binascii.Error as e:
        raise InvalidFairsealKeyError(str(e)) from e
