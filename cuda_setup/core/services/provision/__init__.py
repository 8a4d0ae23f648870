"""
CUDA provisioning — version resolution, acquisition, and installation.

    version.py          catalog check, ResolvedToolkit
    acquisition.py      machine cache → remote cache → origin download
    verification.py     one file per cache directory, chmod on Linux
    installer.py        silent install with guaranteed cleanup
    companion.py        cuDNN unpack and merge
    package_manager.py  apt path for network installs on Linux
    environment.py      install root and environment exports
    platform.py         host profile and per-platform strategies
"""
