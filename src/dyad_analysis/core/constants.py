# Sentinel for an absent response in int8 response arrays
MISSING_VALUE = -1

# Valid observed response codes for binary items
INCORRECT = 0
CORRECT = 1
