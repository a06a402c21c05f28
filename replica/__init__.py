"""Replica blueprint package.

Subpackages:
- evidence: Boundary schemas, selector resolver, and evidence lookup indices
- nodes: Node tree builder, style extraction, relationship inference, component binding
- interaction: Interaction target planner and capture workflows
- blueprint: Blueprint assembly, condensed prompt, validation
- synth: Replica CSS / HTML / bundle synthesizers
"""
