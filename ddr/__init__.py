"""Declarative Deployment Reconciler (DDR).

Single-node controller that keeps Docker containers in line with an in-memory
set of deployments:
 - desired state: deployment name, image and replica count
 - ownership: every container it creates carries an ``owner`` label
 - convergence: each wakeup lists Docker, diffs and creates/removes containers

Wakeups come from deployment changes, container destroy events and a periodic
resync timer.
"""
