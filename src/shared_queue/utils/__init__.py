"""Cross-cutting helpers that do not belong to a layer."""
