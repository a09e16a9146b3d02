"""
bootseq - Ordered Service Sequencing and Process Supervision

Bootstraps a managed application on a cluster node in discrete steps
(write config, launch master, launch worker), where each step may be an
external OS process whose exit status decides whether the sequence continues,
fails or finishes.
"""

__version__ = "0.1.0"
__author__ = "bootseq Team"
