import logging
import os

from imgcache.core.config import SiteConfig, resolve_identity
from imgcache.core.runtimes.factory import RuntimeFactory
from imgcache.core.schedulers.factory import SchedulerFactory

log = logging.getLogger(__name__)


class SubcommandPlugin:
    """Base class for CLI subcommand plugins."""

    PLUGIN_ORDERS = {
        "cache": 0,
        "gpu": 10,
        "array": 20,
    }

    def get_name(self):
        raise NotImplementedError

    def get_parser(self, subparsers):
        """Register subcommand with argparse subparsers."""
        raise NotImplementedError

    def get_epilog(self):
        """Return examples or help text for this subcommand. Default is empty."""
        return ""

    def get_order(self):
        """Return the display order for this plugin. Lower numbers appear first. Default is 0."""
        return self.PLUGIN_ORDERS.get(self.get_name(), 0)

    def run(self, args):
        """Run the subcommand logic. Returns the process exit code."""
        raise NotImplementedError

    def load_site_config(self, args):
        # --site_file takes precedence over the IMGCACHE_SITE_FILE env var
        site_file = getattr(args, 'site_file', None) or os.environ.get('IMGCACHE_SITE_FILE')
        if site_file:
            log.debug(f"Loading site configuration from {site_file}")
            return SiteConfig.from_file(site_file)
        return SiteConfig()

    def build_components(self, args):
        """
        Resolve everything a submitter needs from the process environment.

        This is the only place the environment is read.

        Returns:
            Tuple of (config, scheduler, runtime, identity)
        """
        config = self.load_site_config(args)
        identity = resolve_identity(os.environ)
        scheduler = SchedulerFactory.create(config, log)
        runtime = RuntimeFactory.create(config.runtime, log, executable=config.podman)
        return config, scheduler, runtime, identity
