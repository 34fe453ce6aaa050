"""
Conversation Templates

Question lists the live-guidance path checks the transcript against.
"""

INVESTMENT_INTAKE_TEMPLATE = """1. What is the client's full name, DOB, and contact information?
2. What is the client's current investable asset total and cash allocation?
3. What is the client's target retirement age and income goal?
4. What products does the client currently hold?
5. What concerns does the client have based on past experiences with advisors?
6. Which strategies were recommended for growth, income, and stability?
7. Which values-based investment type did the client express interest in?
8. What alternative product did the client inquire about that the firm does not sell directly?
9. What tax efficiency methods were discussed?
10. What wealth transfer/estate planning priorities did the client mention?
11. What specific concerns does the client have about fees and flexibility?
12. What are the dates and times of the scheduled follow-up meetings?
13. What is the focus of the final requested portfolio proposal?"""

DEFAULT_TEMPLATE = INVESTMENT_INTAKE_TEMPLATE
