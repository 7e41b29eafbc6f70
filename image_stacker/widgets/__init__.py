"""Qt widgets for the Image Stacker window."""
