"""Machine entity."""

from pydantic import Field

from ...shared.base import Entity


class Machine(Entity):
    """A production resource with its own job queue and availability calendar."""

    machine_name: str = Field(min_length=1, max_length=100)
    work_center: str | None = Field(default=None, max_length=100)

    def accepts_work_center(self, work_center: str | None) -> bool:
        """
        Whether a job of ``work_center`` may run on this machine.

        Jobs or machines without a work center are unrestricted.
        """
        if not work_center or not self.work_center:
            return True
        return work_center == self.work_center

    def is_valid(self) -> bool:
        return bool(self.machine_name.strip())
