"""Command line app for the inker rendering pipeline."""
