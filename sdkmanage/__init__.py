"""sdk-manage: manage toolings, targets and the SDK of a cross-compilation SDK."""
