'''
Copyright 2025 Advanced Micro Devices, Inc.
All rights reserved. This notice is intended as a precaution against inadvertent publication and does not imply publication or any waiver of confidentiality.
The year included in the foregoing notice is the year of creation of the work.
All code contained here is Property of Advanced Micro Devices, Inc.
'''

from imgcache.core.schedulers.slurm import SlurmScheduler
from imgcache.lib.exec_lib import create_executor


class SchedulerFactory:
    """Factory for creating batch scheduler clients."""

    @staticmethod
    def create(config, log, executor=None):
        """
        Create a scheduler client for a SiteConfig.

        Args:
            config: SiteConfig instance
            log: Logger instance
            executor: Optional executor; defaults to local or SSH based on config.login_node

        Raises:
            ValueError: If the scheduler is unsupported
        """
        scheduler_name = config.scheduler.lower()
        if executor is None:
            executor = create_executor(log, config)

        if scheduler_name == 'slurm':
            return SlurmScheduler(log, executor, sbatch=config.sbatch, srun=config.srun)
        else:
            raise ValueError(f"Unsupported scheduler: {scheduler_name}")

    @staticmethod
    def get_supported_schedulers():
        return ['slurm']
