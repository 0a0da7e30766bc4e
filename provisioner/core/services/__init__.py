"""Services — install strategies, profile content, step builders."""
