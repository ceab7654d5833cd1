"""ticketcard: sequential ticket numbering and card generation for form-response workbooks."""

__version__ = "0.1.0"
