"""Install, removal and package workflows for toolings and targets."""
