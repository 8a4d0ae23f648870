"""cuda-toolkit-setup — provision the CUDA toolkit onto CI hosts."""

__version__ = "0.1.0"
