"""AI roadmap generation: provider routing, YouTube enrichment and similarity search."""
