# The analytics engine is consumed in-process; the HTTP layer is mounted by
# the hosting project.
urlpatterns = []
