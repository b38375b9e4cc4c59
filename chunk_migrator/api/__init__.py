"""HTTP control surface for migration runs."""
