'''
Copyright 2025 Advanced Micro Devices, Inc.
All rights reserved. This notice is intended as a precaution against inadvertent publication and does not imply publication or any waiver of confidentiality.
The year included in the foregoing notice is the year of creation of the work.
All code contained here is Property of Advanced Micro Devices, Inc.

Image Cache Submitter
=====================
Pre-warms a container image on a set of compute nodes by submitting one
batch job that runs `podman pull` on every allocated node.
'''

from imgcache.core.errors import EnvironmentUnresolved, InvalidArgument
from imgcache.core.models import JobSpec, SubmissionRequest


def validate_positive_int(value, what):
    # bool is an int subclass; True must not mean one
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidArgument(f"{what} must be a positive integer, got {value!r}")
    return value


class ImageCacheSubmitter:
    """
    Translate "pre-warm image X across N nodes" into one scheduler submission.

    All site values come from the injected SiteConfig and the caller identity
    is passed in explicitly, so nothing here reads the process environment.

    Typical usage:
        scheduler = SchedulerFactory.create(config, log)
        runtime = RuntimeFactory.create(config.runtime, log, config.podman)
        submitter = ImageCacheSubmitter(log, config, scheduler, runtime, identity='alice')
        job_id = submitter.submit('registry.example/app:1.0')
    """

    def __init__(self, log, config, scheduler, runtime, identity):
        """
        Args:
            log: Logger instance
            config: SiteConfig instance
            scheduler: BatchScheduler implementation
            runtime: ContainerRuntime implementation
            identity: Caller user name used to namespace the temporary directory
        """
        self.log = log
        self.config = config
        self.scheduler = scheduler
        self.runtime = runtime
        self.identity = identity

    def build_job_spec(self, image_reference, node_count=None):
        """
        Validate inputs and build the JobSpec for one submission.

        Raises:
            InvalidArgument: Empty image reference or non-positive node count
            EnvironmentUnresolved: No caller identity
        """
        if image_reference is None or not str(image_reference).strip():
            raise InvalidArgument("An image reference is required (e.g. registry.example/app:1.0)")
        if node_count is None:
            node_count = self.config.node_count
        validate_positive_int(node_count, "Node count")

        if not self.identity:
            raise EnvironmentUnresolved("Unable to determine the current user to resolve the temporary directory")

        return JobSpec(
            image_reference=str(image_reference).strip(),
            node_count=node_count,
            working_temp_dir=self.config.temp_dir_for(self.identity),
            auth_file_path=self.config.auth_file,
            output_pattern=self.config.output_pattern,
        )

    def build_request(self, spec):
        """Build the scheduler request that pulls spec.image_reference on every node."""
        pull_cmd = self.runtime.pull_command(spec.image_reference, spec.auth_file_path)
        wrapped = self.scheduler.distributed_run(pull_cmd, output=spec.output_pattern)
        # Per-node output already goes to output_pattern
        return SubmissionRequest(
            wrap=wrapped,
            nodes=spec.node_count,
            output='/dev/null',
            environment={'TMPDIR': spec.working_temp_dir},
        )

    def submit(self, image_reference, node_count=None):
        """
        Submit a cache-warming job for image_reference.

        Args:
            image_reference: Image to pull, in registry/repo:tag or digest form
            node_count: Number of nodes to warm (default: config.node_count, 4)

        Returns:
            Scheduler-assigned job id

        Raises:
            InvalidArgument: Bad caller input, no scheduler call made
            EnvironmentUnresolved: Caller identity unavailable, no scheduler call made
            SubmissionFailed: The scheduler rejected or could not accept the job
        """
        spec = self.build_job_spec(image_reference, node_count)
        request = self.build_request(spec)
        self.log.info(f"Caching {spec.image_reference} on {spec.node_count} nodes")
        job_id = self.scheduler.submit(request)
        self.log.info(f"Per-node logs: {spec.output_path('<node>', job_id)}")
        return job_id
