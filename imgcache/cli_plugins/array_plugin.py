import logging

from .base import SubcommandPlugin
from imgcache.core.container_jobs import ArrayJobSubmitter
from imgcache.core.errors import InvalidArgument

log = logging.getLogger(__name__)


class ArrayPlugin(SubcommandPlugin):
    def get_name(self):
        return "array"

    def get_parser(self, subparsers):
        parser = subparsers.add_parser('array', help='Run a container once per line of an argument file as a job array')
        parser.add_argument('--tag', help='Image tag for a known shorthand image; ignored when IMAGE is fully qualified')
        parser.add_argument('--max_tasks', type=int, default=None,
                            help='Maximum number of array tasks running at once (default: array_max_tasks, 16)')
        parser.add_argument('--sbatch_args', help='Additional arguments to sbatch (quote as one string)')
        parser.add_argument('--podman_args', help='Additional arguments to podman run (quote as one string)')
        parser.add_argument('image', help='Image: a known shorthand such as "freesurfer", or a qualified name')
        parser.add_argument('command', help='Command executed inside each container')
        parser.add_argument('arg_file', help='File with one argument per line; each line becomes one array task')
        parser.set_defaults(_plugin=self)
        return parser

    def get_epilog(self):
        return """
Array Commands:
  imgcache array freesurfer recon-all subjects.txt                  One task per subject, 16 at a time
  imgcache array --max_tasks 4 registry.example/app:1.0 run inputs.txt

  Blank lines in ARG_FILE are skipped."""

    def run(self, args):
        try:
            with open(args.arg_file) as f:
                arg_lines = f.read().splitlines()
        except OSError as e:
            raise InvalidArgument(f"Unable to read argument file '{args.arg_file}': {e}") from e

        config, scheduler, runtime, identity = self.build_components(args)
        submitter = ArrayJobSubmitter(log, config, scheduler, runtime, identity)
        job_id = submitter.submit(
            args.image,
            args.command,
            arg_lines,
            tag=args.tag,
            max_tasks=args.max_tasks,
            sbatch_args=args.sbatch_args,
            podman_args=args.podman_args,
        )
        print(job_id)
        return 0
