"""marketcharts core package."""
