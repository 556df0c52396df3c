from django.contrib import admin

from .models import Profile


# Profiles are created by a post_save signal on User, so roles are edited
# here rather than through an inline on the user form.
@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ['user', 'role']
    list_editable = ['role']
    list_filter = ['role']
    search_fields = ['user__username', 'user__email']

    def has_add_permission(self, request):
        return False
