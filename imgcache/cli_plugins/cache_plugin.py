import logging

from .base import SubcommandPlugin
from imgcache.core.container_jobs import resolve_image
from imgcache.core.errors import InvalidArgument
from imgcache.core.submitter import ImageCacheSubmitter, validate_positive_int

log = logging.getLogger(__name__)


class CachePlugin(SubcommandPlugin):
    def get_name(self):
        return "cache"

    def get_parser(self, subparsers):
        parser = subparsers.add_parser('cache', help='Pull a container image on several nodes to warm their image cache')
        parser.add_argument('image', help='Image reference. Known shorthands (e.g. freesurfer) expand to their configured '
                             'repository and default tag; any other reference is pulled unchanged')
        parser.add_argument('--nodes', type=int, default=None,
                            help='Number of nodes to warm (default: node_count from the site file, 4)')
        parser.add_argument('--tag', help='Tag for a known shorthand image; ignored for qualified names')
        parser.set_defaults(_plugin=self)
        return parser

    def get_epilog(self):
        return """
Cache Commands:
  imgcache cache registry.example/app:1.0             Pull on 4 nodes, print the job id
  imgcache cache registry.example/app:1.0 --nodes 8   Pull on 8 nodes
  imgcache cache --tag 7.4.1 freesurfer               Pull a known image at a specific tag
  imgcache registry.example/app:1.0 --nodes 8         Same as `imgcache cache ...`; cache is the default

  Known shorthand names from the site file (freesurfer by default) expand to their
  configured repository and tag; every other reference is passed to podman unchanged.

  Per-node logs are written to cache-image-<node>-<jobid>.out in the submit directory."""

    def run(self, args):
        if not args.image or not args.image.strip():
            raise InvalidArgument("An image reference is required (e.g. registry.example/app:1.0)")
        if args.nodes is not None:
            validate_positive_int(args.nodes, "Node count")

        config, scheduler, runtime, identity = self.build_components(args)
        image, _ = resolve_image(args.image, config.known_images, tag=args.tag, log=log)

        submitter = ImageCacheSubmitter(log, config, scheduler, runtime, identity)
        job_id = submitter.submit(image, node_count=args.nodes)
        print(job_id)
        return 0
