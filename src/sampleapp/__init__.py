"""SampleApp background tasks: bounded work queue, worker loop and host."""

__version__ = "0.1.0"
