import argparse
import logging

from .base import SubcommandPlugin
from imgcache.core.container_jobs import GpuJobSubmitter

log = logging.getLogger(__name__)


class GpuPlugin(SubcommandPlugin):
    def get_name(self):
        return "gpu"

    def get_parser(self, subparsers):
        parser = subparsers.add_parser('gpu', help='Run a command inside a container on a GPU node')
        parser.add_argument('--tag', help='Image tag for a known shorthand image; ignored when IMAGE is fully qualified')
        parser.add_argument('--sbatch_args', help='Additional arguments to sbatch (quote as one string)')
        parser.add_argument('--podman_args', help='Additional arguments to podman run (quote as one string)')
        parser.add_argument('image', help='Image: a known shorthand such as "freesurfer", or a qualified name')
        parser.add_argument('command',
                            help='Command executed inside the container. An existing .sh file is mounted and run')
        parser.add_argument('command_args', nargs=argparse.REMAINDER, help='Arguments passed to COMMAND')
        parser.set_defaults(_plugin=self)
        return parser

    def get_epilog(self):
        return """
GPU Commands:
  imgcache gpu freesurfer recon-all -s subj01 -i t1.nii.gz     Run recon-all in the default freesurfer image
  imgcache gpu --tag 7.4.1 freesurfer ./pipeline.sh subj01      Mount and run a local script
  imgcache gpu --sbatch_args="--time=04:00:00" registry.example/app:1.0 train

  Options must come before IMAGE; everything after COMMAND is passed to it."""

    def run(self, args):
        config, scheduler, runtime, identity = self.build_components(args)
        submitter = GpuJobSubmitter(log, config, scheduler, runtime, identity)
        job_id = submitter.submit(
            args.image,
            args.command,
            command_args=args.command_args,
            tag=args.tag,
            sbatch_args=args.sbatch_args,
            podman_args=args.podman_args,
        )
        print(job_id)
        return 0
